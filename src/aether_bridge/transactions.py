"""Transaction submission and receipt handling."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Mapping
from typing import Any

from .config import BridgeConfig
from .exceptions import EndpointsExhausted, TransactionFailed
from .protocols.base import ContractCall
from .rpc import RpcFallbackClient
from .session import SessionContext
from .utils import hex_to_int, serialise_receipt

logger = logging.getLogger(__name__)


class TransactionSubmitter:
    """Send contract calls through the session signer and confirm them over RPC."""

    def __init__(
        self,
        rpc: RpcFallbackClient,
        config: BridgeConfig | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._rpc = rpc
        self._config = config or BridgeConfig()
        self._clock = clock
        self._sleep = sleep

    def submit(self, session: SessionContext, call: ContractCall) -> str:
        tx_hash = self.send(session, call)
        self.confirm(call, tx_hash)
        return tx_hash

    def send(self, session: SessionContext, call: ContractCall) -> str:
        """Hand ``call`` to the signer and return the transaction hash without waiting."""

        signer = session.require_signer()
        logger.info("Dispatching %s on %s to %s", call.action, call.network.id, call.to)

        tx_hash = signer.send_transaction(call.to, call.data, call.value)
        logger.info("Transaction sent for action=%s hash=%s", call.action, tx_hash)
        return tx_hash

    def confirm(self, call: ContractCall, tx_hash: str) -> None:
        if self._config.wait_for_receipt:
            receipt = self.wait_for_receipt(call, tx_hash)
            logger.info(
                "Transaction confirmed for action=%s hash=%s block=%s",
                call.action,
                tx_hash,
                receipt.get("blockNumber"),
            )

    def wait_for_receipt(self, call: ContractCall, tx_hash: str) -> Mapping[str, Any]:
        """Poll until the transaction is mined; reverted or missing receipts raise."""

        deadline = self._clock() + self._config.receipt_timeout
        while True:
            try:
                receipt = self._rpc.get_transaction_receipt(call.network.rpc_urls, tx_hash)
            except EndpointsExhausted as exc:
                logger.debug("Receipt lookup for %s failed: %s", tx_hash, exc)
                receipt = None

            if receipt:
                if hex_to_int(receipt.get("status", "0x1")) == 0:
                    raise TransactionFailed(
                        f"Transaction reverted during {call.action}",
                        tx_hash=tx_hash,
                        action=call.action,
                        details={"receipt": serialise_receipt(receipt)},
                    )
                return receipt

            if self._clock() >= deadline:
                raise TransactionFailed(
                    f"No receipt for {call.action} within {self._config.receipt_timeout:.0f}s",
                    tx_hash=tx_hash,
                    action=call.action,
                )
            self._sleep(self._config.receipt_poll_interval)

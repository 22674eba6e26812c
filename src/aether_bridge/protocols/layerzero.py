"""LayerZero message-relay strategy."""

from __future__ import annotations

import logging

from eth_abi import encode as abi_encode
from web3 import Web3

from ..config import LZ_SCAN_MAINNET, LZ_SCAN_TESTNET
from ..constants import Selector
from ..exceptions import TransactionFailed
from ..types import (
    NATIVE_ADDRESS,
    Network,
    ProofArtifact,
    ProtocolKind,
    StageVariant,
    TransferAttempt,
)
from ..utils import address_to_bytes32, encode_call
from .base import BridgeProtocol, ContractCall, records, require

logger = logging.getLogger(__name__)

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

_DELIVERED = "DELIVERED"
_FAILED_STATUSES = ("FAILED", "BLOCKED", "PAYLOAD_STORED")


class LayerZeroProtocol(BridgeProtocol):
    """Send a value/message-bearing packet through the endpoint and wait for relay delivery.

    Delivery executes the destination-side effect, so settlement is implicit.
    """

    kind = ProtocolKind.MESSAGE_RELAY
    send_variant = StageVariant.MESSAGE
    proof_variant = StageVariant.RELAY_DELIVERY
    finalize_variant = StageVariant.SETTLE

    def spender(self, source: Network) -> str:
        return require(source, "lz_endpoint")

    def build_send(self, attempt: TransferAttempt, sender: str) -> ContractCall:
        endpoint = Web3.to_checksum_address(self.spender(attempt.source))
        destination_eid = require(attempt.destination, "lz_eid")
        recipient = self.recipient(attempt, sender)

        token = self._catalog.resolve_address(attempt.asset, attempt.source)
        token_address = ZERO_ADDRESS if token == NATIVE_ADDRESS else token
        message = abi_encode(
            ["address", "address", "uint256"], [token_address, recipient, attempt.amount_units]
        )
        params = (destination_eid, address_to_bytes32(recipient), message, b"", False)
        data = encode_call(
            Selector.LZ_SEND.value,
            ["(uint32,bytes32,bytes,bytes,bool)", "address"],
            [params, Web3.to_checksum_address(sender)],
        )

        value = self.message_value(attempt)
        logger.debug(
            "Stage LAYERZERO [%s]: send to eid %s (value=%s wei)", attempt.id, destination_eid, value
        )
        return ContractCall(
            network=attempt.source, to=endpoint, data=data, value=value, action="send"
        )

    def message_value(self, attempt: TransferAttempt) -> int:
        if attempt.asset.is_non_fungible:
            return self._config.nft_relay_fee_wei
        if attempt.asset.is_native:
            return attempt.amount_units + self._config.relay_fee_wei
        return self._config.relay_fee_wei

    def fetch_proof(self, attempt: TransferAttempt) -> ProofArtifact | None:
        tx_hash = attempt.artifacts.send_tx
        if not tx_hash:
            return None

        json_resp = self._get_json(f"{self.scan_base_url(attempt.source)}/v1/messages/tx/{tx_hash}")
        if json_resp is None:
            return None

        for record in records(json_resp, "data"):
            status = record.get("status")
            name = str(status.get("name") if isinstance(status, dict) else status or "").upper()
            if name == _DELIVERED:
                destination = record.get("destination") or {}
                delivery_tx = ""
                if isinstance(destination, dict):
                    tx = destination.get("tx") or {}
                    delivery_tx = str(tx.get("txHash") or "") if isinstance(tx, dict) else ""
                payload = Web3.to_bytes(hexstr=delivery_tx) if delivery_tx.startswith("0x") else b""
                return ProofArtifact(payload=payload, reference=delivery_tx or None)
            if name in _FAILED_STATUSES:
                raise TransactionFailed(
                    f"Relay delivery {name.lower()}",
                    tx_hash=tx_hash,
                    action="relay delivery",
                    details={"status": status},
                )
            logger.debug("Relay delivery for %s still %s", tx_hash, name or "unknown")
        return None

    def build_finalize(self, attempt: TransferAttempt, sender: str) -> ContractCall | None:
        return None

    def scan_base_url(self, source: Network) -> str:
        configured = self._config.proof.relay_scan_url
        if configured:
            return configured.rstrip("/")
        return LZ_SCAN_TESTNET if source.is_testnet else LZ_SCAN_MAINNET

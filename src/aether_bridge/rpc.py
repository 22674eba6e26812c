"""JSON-RPC client that falls back across equivalent endpoints."""

from __future__ import annotations

import itertools
import logging
from collections.abc import Mapping, Sequence
from typing import Any

import requests

from .config import RpcConfig
from .exceptions import EndpointsExhausted
from .utils import hex_to_int

logger = logging.getLogger(__name__)

_request_ids = itertools.count(1)


class _EndpointFailure(Exception):
    """Internal signal that a single endpoint did not yield a usable result."""


class RpcFallbackClient:
    """Issue one logical JSON-RPC request against an ordered endpoint list.

    Endpoints are tried in order; the first response without an ``error``
    field wins and later endpoints are never contacted. Nothing is cached, so
    every call re-probes the list from the start.
    """

    def __init__(
        self, session: requests.Session | None = None, config: RpcConfig | None = None
    ) -> None:
        self._session = session or requests.Session()
        self._config = config or RpcConfig()

    @property
    def request_timeout(self) -> float:
        return self._config.request_timeout

    def call(self, endpoints: Sequence[str], method: str, params: Sequence[Any] = ()) -> Any:
        urls = [endpoints] if isinstance(endpoints, str) else list(endpoints)
        failures: dict[str, str] = {}

        for url in urls:
            try:
                result = self._call_endpoint(url, method, params)
            except _EndpointFailure as exc:
                failures[url] = str(exc)
                logger.debug("RPC %s failed on %s: %s", method, url, exc)
                continue
            return result

        raise EndpointsExhausted(
            f"All {len(urls)} RPC endpoints failed for {method}",
            endpoints=urls,
            method=method,
            details={"failures": failures},
        )

    def reachability(self, endpoints: str | Sequence[str]) -> bool:
        """Return whether a lightweight read succeeds on any of ``endpoints``."""
        try:
            return self.call(endpoints, "eth_blockNumber", []) is not None
        except EndpointsExhausted:
            return False

    # ------------------------------------------------------------------
    # Convenience reads
    # ------------------------------------------------------------------
    def block_number(self, endpoints: Sequence[str]) -> int:
        return hex_to_int(self.call(endpoints, "eth_blockNumber", []))

    def get_balance(self, endpoints: Sequence[str], address: str) -> int:
        return hex_to_int(self.call(endpoints, "eth_getBalance", [address, "latest"]))

    def eth_call(self, endpoints: Sequence[str], to: str, data: bytes | str) -> str:
        payload = data if isinstance(data, str) else "0x" + data.hex()
        return self.call(endpoints, "eth_call", [{"to": to, "data": payload}, "latest"])

    def get_transaction_receipt(
        self, endpoints: Sequence[str], tx_hash: str
    ) -> Mapping[str, Any] | None:
        return self.call(endpoints, "eth_getTransactionReceipt", [tx_hash])

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _call_endpoint(self, url: str, method: str, params: Sequence[Any]) -> Any:
        body = {"jsonrpc": "2.0", "method": method, "params": list(params), "id": next(_request_ids)}
        try:
            response = self._session.post(url, json=body, timeout=self._config.request_timeout)
        except requests.RequestException as exc:
            raise _EndpointFailure(f"transport error: {exc}") from exc

        if not 200 <= response.status_code < 300:
            raise _EndpointFailure(f"HTTP {response.status_code}")

        try:
            payload = response.json()
        except ValueError as exc:
            raise _EndpointFailure("malformed JSON payload") from exc

        if not isinstance(payload, Mapping):
            raise _EndpointFailure("unexpected payload shape")
        if payload.get("error") is not None:
            raise _EndpointFailure(f"RPC error: {payload['error']}")
        if "result" not in payload:
            raise _EndpointFailure("response carries no result")

        return payload["result"]

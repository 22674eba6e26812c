from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any

import pytest
import requests

from aether_bridge.assets import AssetCatalog
from aether_bridge.base import SignerBase
from aether_bridge.config import BridgeConfig, ProofConfig
from aether_bridge.exceptions import UserRejected
from aether_bridge.registry import NetworkRegistry
from aether_bridge.store import MemoryStore
from aether_bridge.types import ChainRequestResult
from aether_bridge.utils import parse_chain_id

SENDER = "0x00000000000000000000000000000000000000a1"


class DummyResponse:
    def __init__(self, payload: Any = None, status_code: int = 200, raw: str | None = None):
        self._payload = payload
        self.status_code = status_code
        self._raw = raw

    def json(self) -> Any:
        if self._raw is not None:
            raise ValueError("not json")
        return self._payload

    def raise_for_status(self) -> None:
        if not 200 <= self.status_code < 300:
            raise requests.HTTPError(f"HTTP {self.status_code}")


Handler = Callable[[str, dict[str, Any]], Any]


class DummySession:
    """Record requests and answer them through ``handler(url, kwargs)``.

    A handler may return a ``DummyResponse``, raise, or return any other value
    which is wrapped as a JSON payload.
    """

    def __init__(self, handler: Handler | None = None) -> None:
        self._handler = handler or (lambda url, kwargs: DummyResponse(status_code=404))
        self.calls: list[tuple[str, str, dict[str, Any]]] = []

    def _dispatch(self, verb: str, url: str, kwargs: dict[str, Any]) -> DummyResponse:
        self.calls.append((verb, url, kwargs))
        result = self._handler(url, kwargs)
        return result if isinstance(result, DummyResponse) else DummyResponse(result)

    def post(self, url: str, **kwargs: Any) -> DummyResponse:
        return self._dispatch("POST", url, kwargs)

    def get(self, url: str, **kwargs: Any) -> DummyResponse:
        return self._dispatch("GET", url, kwargs)


class FakeSigner(SignerBase):
    """In-memory wallet. Transactions to addresses in ``reject_targets`` (lowercase) are declined."""

    def __init__(
        self,
        chain_id: int = 11155111,
        *,
        known_chains: tuple[int, ...] = (11155111, 1),
        follow_switch: bool = True,
        identity: str = "",
    ) -> None:
        self.chain_id = chain_id
        self.known_chains = set(known_chains)
        self.follow_switch = follow_switch
        self.identity = identity
        self.sent: list[tuple[str, bytes, int]] = []
        self.switches: list[str] = []
        self.added: list[Mapping[str, Any]] = []
        self.reject_targets: set[str] = set()
        self.reject_switch = False

    def request_accounts(self) -> str:
        return SENDER

    def active_chain(self) -> int:
        return self.chain_id

    def switch_chain(self, chain_id_hex: str) -> ChainRequestResult:
        self.switches.append(chain_id_hex)
        if self.reject_switch:
            return ChainRequestResult.REJECTED
        chain_id = parse_chain_id(chain_id_hex)
        if chain_id not in self.known_chains:
            return ChainRequestResult.UNKNOWN_CHAIN
        if self.follow_switch:
            self.chain_id = chain_id
        return ChainRequestResult.OK

    def add_chain(self, definition: Mapping[str, Any]) -> ChainRequestResult:
        self.added.append(definition)
        self.known_chains.add(parse_chain_id(definition["chainId"]))
        return ChainRequestResult.OK

    def send_transaction(self, to: str, data: bytes, value: int = 0) -> str:
        if to.lower() in self.reject_targets:
            raise UserRejected("User denied transaction signature.", action="sign the transaction")
        self.sent.append((to, data, value))
        return "0x" + f"{len(self.sent):064x}"

    def read_only_call(self, to: str, data: bytes) -> bytes:
        return b""

    def client_version(self) -> str:
        return self.identity


@pytest.fixture
def registry() -> NetworkRegistry:
    registry = NetworkRegistry(MemoryStore())
    registry.load()
    return registry


@pytest.fixture
def catalog(registry: NetworkRegistry) -> AssetCatalog:
    return AssetCatalog(registry)


@pytest.fixture
def config() -> BridgeConfig:
    return BridgeConfig(
        proof=ProofConfig(
            iris_base_url="https://iris",
            relay_scan_url="https://scan",
            poll_interval=0.01,
            max_interval=0.02,
        ),
        wait_for_receipt=False,
    )

"""Registry of known networks: built-ins plus user deployed hubs."""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Sequence
from dataclasses import replace
from typing import Any

from web3 import Web3

from .constants import BUILTIN_NETWORKS, HUB_DEFAULTS, MAINNET
from .exceptions import (
    InvalidNetwork,
    NetworkNotFound,
    SignerUnavailable,
    UserRejected,
    ValidationError,
)
from .session import SessionContext
from .store import JsonFileStore, MemoryStore
from .types import ChainRequestResult, Network, NetworkId, NetworkKind
from .utils import chain_id_to_hex, chain_ids_agree

logger = logging.getLogger(__name__)

CUSTOM_NETWORKS_KEY = "custom_networks"

_ADDRESS_FIELDS = ("cctp_token_messenger", "cctp_message_transmitter", "lz_endpoint")


def validate_network(network: Network) -> None:
    """Raise ``InvalidNetwork`` unless the definition is usable."""

    network_id = network.id.value
    if not network.rpc_urls:
        raise InvalidNetwork("Network must declare at least one RPC endpoint", network_id, "rpc_urls")
    for url in network.rpc_urls:
        if not isinstance(url, str) or not url.startswith(("http://", "https://")):
            raise InvalidNetwork(
                "RPC endpoint must be an http(s) URL", network_id, "rpc_urls", {"url": url}
            )
    if network.chain_id <= 0:
        raise InvalidNetwork("Chain id must be positive", network_id, "chain_id")
    if not chain_ids_agree(network.chain_id, network.chain_id_hex):
        raise InvalidNetwork(
            "Decimal and hex chain identifiers disagree",
            network_id,
            "chain_id_hex",
            {"chain_id": network.chain_id, "chain_id_hex": network.chain_id_hex},
        )
    for field_name in _ADDRESS_FIELDS:
        address = getattr(network, field_name)
        if address is not None and not Web3.is_address(address):
            raise InvalidNetwork("Invalid contract address", network_id, field_name, {"value": address})


class NetworkRegistry:
    """Ordered, append-only set of networks shared by the whole process.

    Reads may happen from any thread; writes are serialized.
    """

    def __init__(
        self,
        store: MemoryStore | JsonFileStore | None = None,
        *,
        builtins: Sequence[Network] = BUILTIN_NETWORKS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        for network in builtins:
            validate_network(network)
        self._builtin = tuple(builtins)
        self._store = store if store is not None else MemoryStore()
        self._clock = clock
        self._lock = threading.Lock()
        self._custom: list[Network] = []
        self._loaded = False

    def load(self) -> None:
        """Read persisted custom networks once; invalid entries are skipped.

        Also runs implicitly before the first read or write.
        """

        with self._lock:
            if self._loaded:
                return
            raw_entries = self._store.get(CUSTOM_NETWORKS_KEY, []) or []
            for entry in raw_entries:
                try:
                    network = Network.from_dict(entry)
                    validate_network(network)
                except (InvalidNetwork, KeyError, TypeError, ValueError) as exc:
                    logger.warning("Skipping persisted network %r: %s", entry, exc)
                    continue
                if self._find(network.id) is not None:
                    logger.warning("Skipping duplicate persisted network %s", network.id)
                    continue
                self._custom.append(network)
            self._loaded = True
            logger.debug("Loaded %s custom network(s)", len(self._custom))

    def register(self, network: Network) -> Network:
        validate_network(network)
        self.load()
        with self._lock:
            if self._find(network.id) is not None:
                raise InvalidNetwork("Network id already registered", network.id.value, "id")
            self._custom.append(network)
            self._store.set(CUSTOM_NETWORKS_KEY, [entry.to_dict() for entry in self._custom])
        logger.info("Registered network %s (chain %s)", network.id, network.chain_id)
        return network

    def list(self) -> tuple[Network, ...]:
        self.load()
        with self._lock:
            return self._builtin + tuple(self._custom)

    def get(self, network_id: str | NetworkId) -> Network:
        key = NetworkId.parse(network_id)
        self.load()
        with self._lock:
            network = self._find(key)
        if network is None:
            raise NetworkNotFound(key.value)
        return network

    def find_by_chain(self, chain_id: int) -> Network | None:
        return next((network for network in self.list() if network.chain_id == chain_id), None)

    def deploy_hub(
        self,
        chain_id: int,
        rpc_urls: Sequence[str] | str,
        *,
        name: str | None = None,
        fork_of: NetworkId | None = MAINNET,
        **overrides: Any,
    ) -> Network:
        """Create and register a custom hub (forked or virtual network)."""

        if isinstance(rpc_urls, str):
            rpc_urls = rpc_urls.split(",")
        urls = tuple(url.strip() for url in rpc_urls if url.strip())
        try:
            chain_id = int(chain_id)
            chain_id_hex = chain_id_to_hex(chain_id)
        except (TypeError, ValueError, ValidationError) as exc:
            raise InvalidNetwork(
                "Invalid hub chain id", field="chain_id", details={"value": chain_id}
            ) from exc

        network = Network(
            id=NetworkId(f"hub-{chain_id}-{int(self._clock() * 1000)}"),
            name=name or f"Virtual Hub ({chain_id})",
            kind=NetworkKind.CUSTOM_HUB,
            chain_id=int(chain_id),
            chain_id_hex=chain_id_hex,
            rpc_urls=urls,
            currency="ETH",
            fork_of=fork_of,
            **HUB_DEFAULTS,
        )
        if overrides:
            network = replace(network, **overrides)
        return self.register(network)

    def switch_or_register(self, session: SessionContext, network: Network) -> ChainRequestResult:
        """Move the session's wallet to ``network``, adding the chain first if unknown to it.

        Custom hubs are added after any failed switch that was not a rejection.
        """

        signer = session.require_signer()
        try:
            result = signer.switch_chain(network.chain_id_hex)
        except SignerUnavailable as exc:
            if not network.is_custom:
                raise
            logger.info("Switch to hub %s failed (%s); requesting add", network.id, exc.message)
            result = ChainRequestResult.UNKNOWN_CHAIN
        if result == ChainRequestResult.OK:
            return result
        if result == ChainRequestResult.REJECTED:
            raise UserRejected("Network switch declined", action=f"switch to {network.name}")

        logger.info("Wallet does not know chain %s; requesting add", network.chain_id)
        added = signer.add_chain(network.chain_definition())
        if added == ChainRequestResult.REJECTED:
            raise UserRejected("Adding network declined", action=f"add {network.name}")

        result = signer.switch_chain(network.chain_id_hex)
        if result == ChainRequestResult.REJECTED:
            raise UserRejected("Network switch declined", action=f"switch to {network.name}")
        if result != ChainRequestResult.OK:
            raise SignerUnavailable(f"Wallet could not switch to {network.name} after adding it")
        return result

    def _find(self, network_id: NetworkId) -> Network | None:
        for network in self._builtin:
            if network.id == network_id:
                return network
        for network in self._custom:
            if network.id == network_id:
                return network
        return None

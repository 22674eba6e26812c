"""Concurrent network health probes and balance reads."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable, Sequence
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from concurrent.futures import wait as wait_futures
from decimal import Decimal

from eth_abi import encode as abi_encode
from web3 import Web3

from .assets import AssetCatalog
from .constants import Selector
from .rpc import RpcFallbackClient
from .types import Asset, HealthState, Network
from .utils import from_base_units, function_selector, hex_to_int

logger = logging.getLogger(__name__)

ZERO_BALANCE = Decimal(0)

HealthListener = Callable[[str, HealthState], None]


class HealthReport:
    """Live view of a health sweep; every entry starts as UNKNOWN and resolves independently."""

    def __init__(self, network_ids: Iterable[str]) -> None:
        self._lock = threading.Lock()
        self._states: dict[str, HealthState] = {nid: HealthState.UNKNOWN for nid in network_ids}
        self._listeners: list[HealthListener] = []
        self._futures: list[Future] = []

    def snapshot(self) -> dict[str, HealthState]:
        with self._lock:
            return dict(self._states)

    def state(self, network_id: str) -> HealthState:
        with self._lock:
            return self._states.get(network_id, HealthState.UNKNOWN)

    @property
    def done(self) -> bool:
        return all(future.done() for future in self._futures)

    def on_change(self, listener: HealthListener) -> None:
        with self._lock:
            self._listeners.append(listener)

    def wait(self, timeout: float | None = None) -> dict[str, HealthState]:
        wait_futures(self._futures, timeout=timeout)
        return self.snapshot()

    def _attach(self, future: Future) -> None:
        self._futures.append(future)

    def _set(self, network_id: str, state: HealthState) -> None:
        with self._lock:
            self._states[network_id] = state
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(network_id, state)
            except Exception:  # pragma: no cover
                logger.warning("Health listener failed for %s", network_id, exc_info=True)


class HealthMonitor:
    """Probe every network's RPC pool concurrently."""

    def __init__(self, rpc: RpcFallbackClient, executor: Executor | None = None) -> None:
        self._rpc = rpc
        self._executor = executor or ThreadPoolExecutor(thread_name_prefix="health")

    def check_all(self, networks: Sequence[Network]) -> HealthReport:
        report = HealthReport(network.id.value for network in networks)
        for network in networks:
            report._attach(self._executor.submit(self._probe, report, network))
        return report

    def _probe(self, report: HealthReport, network: Network) -> None:
        reachable = self._rpc.reachability(network.rpc_urls)
        state = HealthState.HEALTHY if reachable else HealthState.UNREACHABLE
        logger.debug("Health %s: %s", network.id, state.value)
        report._set(network.id.value, state)


class BalanceMonitor:
    """Fetch balances for many assets at once, degrading failures to ``ZERO_BALANCE``."""

    def __init__(
        self,
        rpc: RpcFallbackClient,
        catalog: AssetCatalog,
        executor: Executor | None = None,
    ) -> None:
        self._rpc = rpc
        self._catalog = catalog
        self._executor = executor or ThreadPoolExecutor(thread_name_prefix="balances")
        self._lock = threading.Lock()
        self._view: dict[tuple[str, str], dict[str, Decimal]] = {}

    def fetch_balances(
        self, address: str, assets: Sequence[Asset], network: Network
    ) -> dict[str, Decimal]:
        futures = {
            asset.symbol: self._executor.submit(self._fetch_one, address, asset, network)
            for asset in assets
        }
        balances: dict[str, Decimal] = {}
        for symbol, future in futures.items():
            try:
                balances[symbol] = future.result()
            except Exception as exc:
                logger.warning("Balance of %s on %s unavailable: %s", symbol, network.id, exc)
                balances[symbol] = ZERO_BALANCE

        with self._lock:
            self._view.setdefault((network.id.value, address.lower()), {}).update(balances)
        return balances

    def view(self, address: str, network: Network) -> dict[str, Decimal]:
        """Latest known balances for ``address`` on ``network``."""
        with self._lock:
            return dict(self._view.get((network.id.value, address.lower()), {}))

    def _fetch_one(self, address: str, asset: Asset, network: Network) -> Decimal:
        if asset.is_native:
            wei = self._rpc.get_balance(network.rpc_urls, address)
            return from_base_units(wei, 18)

        token_address = self._catalog.resolve_address(asset, network)
        data = function_selector(Selector.BALANCE_OF.value) + abi_encode(
            ["address"], [Web3.to_checksum_address(address)]
        )
        raw = hex_to_int(self._rpc.eth_call(network.rpc_urls, token_address, data))
        if asset.is_non_fungible:
            return Decimal(raw)
        return from_base_units(raw, asset.decimals)

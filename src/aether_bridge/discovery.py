"""Wallet provider discovery through a bounded request/announce exchange."""

from __future__ import annotations

import logging
import queue
import threading
import time
import uuid
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass

import requests

from .base import SignerBase
from .config import DiscoveryConfig
from .signers import JsonRpcWalletSigner
from .types import ProviderInfo

logger = logging.getLogger(__name__)

INJECTED_WALLET_NAME = "Injected Wallet"

# Matched case-insensitively against a wallet's client identity, in priority order.
_WALLET_NAME_HINTS = (
    ("metamask", "MetaMask"),
    ("coinbase", "Coinbase Wallet"),
    ("rabby", "Rabby"),
    ("frame", "Frame"),
)

Listener = Callable[["ProviderHandle"], None]
Announcer = Callable[["AnnouncementBus"], None]


def guess_wallet_name(identity: str) -> str:
    lowered = (identity or "").lower()
    for hint, name in _WALLET_NAME_HINTS:
        if hint in lowered:
            return name
    return INJECTED_WALLET_NAME


@dataclass(frozen=True, eq=False)
class ProviderHandle:
    """A discovered signer. Two handles are the same provider iff their uuids match."""

    info: ProviderInfo
    signer: SignerBase
    injected: bool = False

    @property
    def uuid(self) -> str:
        return self.info.uuid

    @property
    def name(self) -> str:
        return self.info.name

    def __eq__(self, other: object) -> bool:
        return isinstance(other, ProviderHandle) and other.info.uuid == self.info.uuid

    def __hash__(self) -> int:
        return hash(self.info.uuid)


class Subscription:
    """Temporary listener registration; closing it detaches the listener."""

    def __init__(self, bus: AnnouncementBus, listener: Listener) -> None:
        self._bus = bus
        self._listener = listener
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        if not self._closed:
            self._bus._remove_listener(self._listener)
            self._closed = True

    def __enter__(self) -> Subscription:
        return self

    def __exit__(self, *_exc: object) -> None:
        self.close()


class AnnouncementBus:
    """In-process channel on which wallets answer discovery requests."""

    def __init__(self, *, max_workers: int = 4) -> None:
        self._lock = threading.Lock()
        self._listeners: list[Listener] = []
        self._announcers: list[Announcer] = []
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="wallet-announce"
        )

    @property
    def listener_count(self) -> int:
        with self._lock:
            return len(self._listeners)

    def register_announcer(self, announcer: Announcer) -> None:
        with self._lock:
            self._announcers.append(announcer)

    def subscribe(self, listener: Listener) -> Subscription:
        with self._lock:
            self._listeners.append(listener)
        return Subscription(self, listener)

    def request(self) -> None:
        """Ask every registered wallet to announce itself; answers arrive asynchronously."""
        with self._lock:
            announcers = list(self._announcers)
        for announcer in announcers:
            self._executor.submit(self._run_announcer, announcer)

    def announce(self, handle: ProviderHandle) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            listener(handle)

    def shutdown(self) -> None:
        self._executor.shutdown(wait=False, cancel_futures=True)

    def _remove_listener(self, listener: Listener) -> None:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    def _run_announcer(self, announcer: Announcer) -> None:
        try:
            announcer(self)
        except Exception:  # pragma: no cover
            logger.warning("Wallet announcer %r failed", announcer, exc_info=True)


class LocalWalletAnnouncer:
    """Announce EIP-1193 HTTP wallets that answer on the configured URLs."""

    def __init__(
        self,
        urls: Sequence[str],
        *,
        session: requests.Session | None = None,
        request_timeout: float = 1.0,
    ) -> None:
        self._urls = tuple(urls)
        self._session = session or requests.Session()
        self._request_timeout = request_timeout

    def __call__(self, bus: AnnouncementBus) -> None:
        for url in self._urls:
            signer = JsonRpcWalletSigner(
                url, session=self._session, request_timeout=self._request_timeout
            )
            identity = signer.client_version()
            if not identity:
                logger.debug("No wallet answering at %s", url)
                continue
            info = ProviderInfo(
                uuid=str(uuid.uuid5(uuid.NAMESPACE_URL, url)),
                name=guess_wallet_name(identity),
                rdns=url,
            )
            bus.announce(ProviderHandle(info=info, signer=signer))


class ProviderDiscovery:
    """Collect wallet announcements for a bounded window.

    Announced providers take priority; signers already present in the
    execution context are folded in afterwards under heuristic names.
    """

    def __init__(
        self,
        bus: AnnouncementBus,
        *,
        injected: Sequence[SignerBase] = (),
        config: DiscoveryConfig | None = None,
    ) -> None:
        self._bus = bus
        self._injected = tuple(injected)
        self._config = config or DiscoveryConfig()

    def discover(self, timeout: float | None = None) -> tuple[ProviderHandle, ...]:
        window = self._config.window if timeout is None else max(timeout, 0.0)
        inbox: queue.Queue[ProviderHandle] = queue.Queue()
        found: dict[str, ProviderHandle] = {}

        with self._bus.subscribe(inbox.put):
            self._bus.request()
            deadline = time.monotonic() + window
            while True:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    break
                try:
                    handle = inbox.get(timeout=remaining)
                except queue.Empty:
                    break
                found.setdefault(handle.uuid, handle)

        while True:
            try:
                handle = inbox.get_nowait()
            except queue.Empty:
                break
            found.setdefault(handle.uuid, handle)

        self._fold_injected(found)
        logger.debug("Discovered %s wallet provider(s)", len(found))
        return tuple(found.values())

    def _fold_injected(self, found: dict[str, ProviderHandle]) -> None:
        if not self._injected:
            return

        executor = ThreadPoolExecutor(max_workers=len(self._injected))
        futures = [executor.submit(signer.client_version) for signer in self._injected]
        done, _ = wait(futures, timeout=self._config.grace)
        executor.shutdown(wait=False, cancel_futures=True)

        for index, (signer, future) in enumerate(zip(self._injected, futures)):
            identity = ""
            if future in done and future.exception() is None:
                identity = future.result()
            name = guess_wallet_name(identity)
            handle_uuid = f"injected-{index}"
            if handle_uuid in found or any(h.name == name for h in found.values()):
                continue
            found[handle_uuid] = ProviderHandle(
                info=ProviderInfo(uuid=handle_uuid, name=name), signer=signer, injected=True
            )

from __future__ import annotations

from aether_bridge.config import DiscoveryConfig
from aether_bridge.discovery import (
    AnnouncementBus,
    LocalWalletAnnouncer,
    ProviderDiscovery,
    ProviderHandle,
    guess_wallet_name,
)
from aether_bridge.session import SessionContext
from aether_bridge.types import ProviderInfo
from conftest import SENDER, DummyResponse, DummySession, FakeSigner


def _handle(uuid: str, name: str = "Wallet") -> ProviderHandle:
    return ProviderHandle(ProviderInfo(uuid=uuid, name=name), FakeSigner())


def _discovery(bus: AnnouncementBus, **kwargs) -> ProviderDiscovery:
    return ProviderDiscovery(bus, config=DiscoveryConfig(window=0.2, grace=0.2), **kwargs)


def test_guess_wallet_name() -> None:
    assert guess_wallet_name("MetaMask/v11.0.0") == "MetaMask"
    assert guess_wallet_name("CoinbaseWallet/3.0") == "Coinbase Wallet"
    assert guess_wallet_name("rabby-wallet") == "Rabby"
    assert guess_wallet_name("Frame/0.6") == "Frame"
    assert guess_wallet_name("") == "Injected Wallet"


def test_duplicate_announcements_yield_unique_handles() -> None:
    bus = AnnouncementBus()
    bus.register_announcer(lambda b: [b.announce(_handle("a")) for _ in range(3)])
    bus.register_announcer(lambda b: (b.announce(_handle("b")), b.announce(_handle("a"))))

    found = _discovery(bus).discover()

    assert sorted(handle.uuid for handle in found) == ["a", "b"]


def test_subscription_is_closed_after_discovery() -> None:
    bus = AnnouncementBus()

    assert _discovery(bus).discover(timeout=0.05) == ()
    assert bus.listener_count == 0


def test_injected_signers_are_folded_in_with_heuristic_names() -> None:
    bus = AnnouncementBus()
    bus.register_announcer(lambda b: b.announce(_handle("frame-1", "Frame")))
    injected = [FakeSigner(identity="MetaMask/v11"), FakeSigner(identity="Frame/0.6")]

    found = _discovery(bus, injected=injected).discover()

    names = {handle.name: handle for handle in found}
    assert set(names) == {"Frame", "MetaMask"}
    assert names["MetaMask"].uuid == "injected-0"
    assert names["MetaMask"].injected


def test_local_wallet_announcer_skips_silent_urls() -> None:
    def handler(url, kwargs):
        if url == "http://127.0.0.1:1248":
            return {"jsonrpc": "2.0", "id": 1, "result": "Frame/v0.6.9"}
        return DummyResponse(status_code=404)

    session = DummySession(handler)
    bus = AnnouncementBus()
    bus.register_announcer(
        LocalWalletAnnouncer(
            ["http://127.0.0.1:1248", "http://127.0.0.1:9999"],
            session=session,  # type: ignore[arg-type]
        )
    )

    found = _discovery(bus).discover()

    assert len(found) == 1
    assert found[0].name == "Frame"
    assert found[0].info.rdns == "http://127.0.0.1:1248"


def test_session_binds_provider_and_account() -> None:
    session = SessionContext.connect(_handle("a"))

    assert session.is_connected
    assert session.address == SENDER
    session.close()
    assert not session.is_connected
    assert session.provider is None

"""Example: discover local wallets and probe every network's RPC pool."""

from __future__ import annotations

import logging
import os

from dotenv import load_dotenv

from aether_bridge import (
    AnnouncementBus,
    BridgeConfig,
    HealthMonitor,
    JsonFileStore,
    LocalWalletAnnouncer,
    MemoryStore,
    NetworkRegistry,
    ProviderDiscovery,
    RpcFallbackClient,
)

load_dotenv()

logging.basicConfig(
    level=os.getenv("LOGLEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

logger = logging.getLogger("discover_and_health")


def main() -> None:
    config = BridgeConfig.from_env()
    store = JsonFileStore(config.store_path) if config.store_path else MemoryStore()
    registry = NetworkRegistry(store)
    registry.load()

    bus = AnnouncementBus()
    bus.register_announcer(LocalWalletAnnouncer(config.discovery.wallet_urls))
    try:
        providers = ProviderDiscovery(bus, config=config.discovery).discover()
    finally:
        bus.shutdown()

    if not providers:
        logger.info("No wallet answered on %s", ", ".join(config.discovery.wallet_urls))
    for provider in providers:
        logger.info("Wallet: %s (%s)", provider.name, provider.info.rdns or provider.uuid)

    rpc = RpcFallbackClient(config=config.rpc)
    report = HealthMonitor(rpc).check_all(registry.list())
    for network_id, state in report.wait(timeout=30).items():
        logger.info("%-12s %s", network_id, state.value)


if __name__ == "__main__":
    main()

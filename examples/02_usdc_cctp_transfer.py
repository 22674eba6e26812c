"""Example: bridge USDC from Sepolia to Ethereum mainnet over CCTP with a local key."""

from __future__ import annotations

import logging
import os

from dotenv import load_dotenv

from aether_bridge import (
    AssetCatalog,
    BalanceMonitor,
    BridgeConfig,
    BridgeOrchestrator,
    GeminiAnnotator,
    LocalAccountSigner,
    MemoryStore,
    NetworkRegistry,
    ProviderHandle,
    RpcFallbackClient,
    SessionContext,
    TransferRecord,
    TransferRequest,
)
from aether_bridge.constants import MAINNET, SEPOLIA
from aether_bridge.types import ProviderInfo, StageEvent

load_dotenv()

logging.basicConfig(
    level=os.getenv("LOGLEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

logger = logging.getLogger("usdc_cctp_transfer")

DEFAULT_AMOUNT = "10"


def _require_env(name: str) -> str:
    value = os.getenv(name)
    if not value:
        raise ValueError(f"{name} not found in environment variables")
    return value


def _log_stage(event: StageEvent) -> None:
    variant = f" ({event.variant.value})" if event.variant else ""
    logger.info("[%s] %s%s", event.attempt_id[:8], event.stage.name, variant)
    if event.error:
        logger.error("  %s: %s", event.error.kind.value, event.error.message)


def _log_record(record: TransferRecord | None) -> None:
    if record is None:
        logger.warning("Transfer still running; check back later")
        return
    logger.info("Outcome: %s at %s", record.outcome.value, record.stage.name)
    logger.info("  approval tx: %s", record.artifacts.approval_tx)
    logger.info("  burn tx: %s", record.artifacts.send_tx)
    logger.info("  mint tx: %s", record.artifacts.finalize_tx)
    if record.summary:
        logger.info("  summary: %s", record.summary)


def main() -> None:
    private_key = _require_env("PRIVATE_KEY")
    amount = os.getenv("BRIDGE_AMOUNT_USDC", DEFAULT_AMOUNT)
    timeout = float(os.getenv("BRIDGE_TIMEOUT", "1800"))

    config = BridgeConfig.from_env()
    registry = NetworkRegistry(MemoryStore())
    registry.load()
    catalog = AssetCatalog(registry)
    rpc = RpcFallbackClient(config=config.rpc)

    source = registry.get(SEPOLIA)
    destination = registry.get(MAINNET)
    signer = LocalAccountSigner(
        private_key,
        {source.chain_id: source.rpc_urls, destination.chain_id: destination.rpc_urls},
        request_timeout=config.rpc.request_timeout,
    )
    session = SessionContext.connect(
        ProviderHandle(ProviderInfo(uuid="local-key", name="Local key"), signer)
    )

    orchestrator = BridgeOrchestrator(
        registry,
        catalog,
        rpc,
        config,
        annotator=GeminiAnnotator(config.annotator),
        balance_monitor=BalanceMonitor(rpc, catalog),
    )
    orchestrator.subscribe(_log_stage)

    request = TransferRequest(source=SEPOLIA, destination=MAINNET, asset="USDC", amount=amount)
    logger.info("Bridging %s USDC from %s to %s", amount, source.name, destination.name)
    orchestrator.begin(session, request)
    try:
        _log_record(orchestrator.wait_for_completion(timeout=timeout))
    except KeyboardInterrupt:
        _log_record(orchestrator.abandon())
    finally:
        session.close()


if __name__ == "__main__":
    main()

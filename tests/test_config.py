from __future__ import annotations

from pathlib import Path

from aether_bridge.config import (
    IRIS_API_PROD,
    IRIS_API_SANDBOX,
    LZ_SCAN_MAINNET,
    BridgeConfig,
    ProofConfig,
)


def test_defaults() -> None:
    config = BridgeConfig()

    assert config.wait_for_receipt is True
    assert config.finalize_retry.retries == 0
    assert config.proof.max_wait is None
    assert config.approve_non_fungible is False


def test_with_defaulted_urls_respects_explicit_values() -> None:
    config = BridgeConfig(testnet=False, proof=ProofConfig(iris_base_url="https://iris/"))
    config = config.with_defaulted_urls()

    assert config.proof.iris_base_url == "https://iris"
    assert config.proof.relay_scan_url == LZ_SCAN_MAINNET


def test_from_env_reads_aether_variables(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setenv("AETHER_TESTNET", "true")
    monkeypatch.setenv("AETHER_PROOF_MAX_WAIT", "600")
    monkeypatch.setenv("AETHER_FINALIZE_RETRIES", "1")
    monkeypatch.setenv("AETHER_WALLET_URLS", "http://127.0.0.1:1248, http://localhost:8545")
    monkeypatch.setenv("AETHER_STORE_PATH", str(tmp_path / "store.json"))
    monkeypatch.delenv("AETHER_IRIS_URL", raising=False)

    config = BridgeConfig.from_env(tmp_path / "missing.env")

    assert config.testnet is True
    assert config.proof.iris_base_url == IRIS_API_SANDBOX
    assert config.proof.max_wait == 600.0
    assert config.finalize_retry.retries == 1
    assert config.discovery.wallet_urls == ("http://127.0.0.1:1248", "http://localhost:8545")
    assert config.store_path == tmp_path / "store.json"


def test_from_env_without_network_flag_keeps_urls_open(monkeypatch, tmp_path: Path) -> None:
    for name in ("AETHER_TESTNET", "AETHER_IRIS_URL", "AETHER_RELAY_SCAN_URL"):
        monkeypatch.delenv(name, raising=False)

    config = BridgeConfig.from_env(tmp_path / "missing.env")

    assert config.proof.iris_base_url is None
    assert IRIS_API_PROD != IRIS_API_SANDBOX

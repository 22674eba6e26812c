"""Configuration containers for the bridge engine."""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path

from dotenv import load_dotenv

DEFAULT_REQUEST_TIMEOUT = 10.0
DEFAULT_RECEIPT_TIMEOUT = 120.0
DEFAULT_RECEIPT_POLL_INTERVAL = 2.0
DEFAULT_PROOF_POLL_INTERVAL = 2.0
DEFAULT_PROOF_MAX_INTERVAL = 30.0
DEFAULT_PROOF_BACKOFF = 1.5
DEFAULT_DISCOVERY_WINDOW = 0.5
DEFAULT_DISCOVERY_GRACE = 0.25
DEFAULT_RELAY_FEE_WEI = 5 * 10**15  # 0.005 ETH
DEFAULT_NFT_RELAY_FEE_WEI = 10**17  # 0.1 ETH
DEFAULT_MAX_WORKERS = 8

IRIS_API_SANDBOX = "https://iris-api-sandbox.circle.com"
IRIS_API_PROD = "https://iris-api.circle.com"
LZ_SCAN_TESTNET = "https://scan-testnet.layerzero-api.com"
LZ_SCAN_MAINNET = "https://scan.layerzero-api.com"
GEMINI_API_URL = "https://generativelanguage.googleapis.com/v1beta"
DEFAULT_ANNOTATOR_MODEL = "gemini-2.0-flash"
DEFAULT_LOCAL_WALLET_URLS = ("http://127.0.0.1:1248",)


@dataclass(frozen=True)
class RpcConfig:
    """Per-endpoint behaviour of the fallback RPC client."""

    request_timeout: float = DEFAULT_REQUEST_TIMEOUT


@dataclass(frozen=True)
class ProofConfig:
    """Polling cadence for attestation and relay delivery waits.

    ``max_wait`` of ``None`` waits until the user abandons the transfer.
    """

    iris_base_url: str | None = None
    relay_scan_url: str | None = None
    poll_interval: float = DEFAULT_PROOF_POLL_INTERVAL
    backoff: float = DEFAULT_PROOF_BACKOFF
    max_interval: float = DEFAULT_PROOF_MAX_INTERVAL
    max_wait: float | None = None


@dataclass(frozen=True)
class FinalizeRetryPolicy:
    """Automatic retries of the destination-side submission before FAILED."""

    retries: int = 0
    retry_on_rejection: bool = False


@dataclass(frozen=True)
class DiscoveryConfig:
    window: float = DEFAULT_DISCOVERY_WINDOW
    grace: float = DEFAULT_DISCOVERY_GRACE
    wallet_urls: tuple[str, ...] = DEFAULT_LOCAL_WALLET_URLS


@dataclass(frozen=True)
class AnnotatorConfig:
    api_key: str | None = None
    model: str = DEFAULT_ANNOTATOR_MODEL
    base_url: str = GEMINI_API_URL
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT


@dataclass(frozen=True)
class BridgeConfig:
    """Aggregated configuration used to construct the bridge engine."""

    rpc: RpcConfig = RpcConfig()
    proof: ProofConfig = ProofConfig()
    finalize_retry: FinalizeRetryPolicy = FinalizeRetryPolicy()
    discovery: DiscoveryConfig = DiscoveryConfig()
    annotator: AnnotatorConfig = AnnotatorConfig()
    wait_for_receipt: bool = True
    receipt_timeout: float = DEFAULT_RECEIPT_TIMEOUT
    receipt_poll_interval: float = DEFAULT_RECEIPT_POLL_INTERVAL
    relay_fee_wei: int = DEFAULT_RELAY_FEE_WEI
    nft_relay_fee_wei: int = DEFAULT_NFT_RELAY_FEE_WEI
    approve_non_fungible: bool = False
    max_workers: int = DEFAULT_MAX_WORKERS
    store_path: Path | None = None
    testnet: bool = True

    def with_defaulted_urls(self) -> BridgeConfig:
        """Return a copy with attestation and relay scan URLs based on network selection."""

        proof = self.proof
        iris_url = proof.iris_base_url
        if iris_url is None:
            iris_url = IRIS_API_SANDBOX if self.testnet else IRIS_API_PROD
        scan_url = proof.relay_scan_url
        if scan_url is None:
            scan_url = LZ_SCAN_TESTNET if self.testnet else LZ_SCAN_MAINNET

        return replace(
            self,
            proof=replace(
                proof, iris_base_url=iris_url.rstrip("/"), relay_scan_url=scan_url.rstrip("/")
            ),
        )

    @classmethod
    def from_env(cls, dotenv_path: str | Path | None = None) -> BridgeConfig:
        """Build a configuration from ``AETHER_*`` environment variables (and ``.env``)."""

        load_dotenv(dotenv_path)

        max_wait_raw = os.getenv("AETHER_PROOF_MAX_WAIT")
        store_raw = os.getenv("AETHER_STORE_PATH")
        wallet_urls_raw = os.getenv("AETHER_WALLET_URLS")

        config = cls(
            rpc=RpcConfig(
                request_timeout=float(
                    os.getenv("AETHER_REQUEST_TIMEOUT", str(DEFAULT_REQUEST_TIMEOUT))
                )
            ),
            proof=ProofConfig(
                iris_base_url=os.getenv("AETHER_IRIS_URL"),
                relay_scan_url=os.getenv("AETHER_RELAY_SCAN_URL"),
                poll_interval=float(
                    os.getenv("AETHER_PROOF_POLL_INTERVAL", str(DEFAULT_PROOF_POLL_INTERVAL))
                ),
                max_wait=float(max_wait_raw) if max_wait_raw else None,
            ),
            finalize_retry=FinalizeRetryPolicy(
                retries=int(os.getenv("AETHER_FINALIZE_RETRIES", "0")),
                retry_on_rejection=os.getenv("AETHER_FINALIZE_RETRY_ON_REJECTION", "false").lower()
                == "true",
            ),
            discovery=DiscoveryConfig(
                window=float(os.getenv("AETHER_DISCOVERY_WINDOW", str(DEFAULT_DISCOVERY_WINDOW))),
                wallet_urls=tuple(
                    url.strip() for url in wallet_urls_raw.split(",") if url.strip()
                )
                if wallet_urls_raw
                else DEFAULT_LOCAL_WALLET_URLS,
            ),
            annotator=AnnotatorConfig(
                api_key=os.getenv("AETHER_ANNOTATOR_API_KEY") or os.getenv("API_KEY"),
                model=os.getenv("AETHER_ANNOTATOR_MODEL", DEFAULT_ANNOTATOR_MODEL),
            ),
            wait_for_receipt=os.getenv("AETHER_WAIT_FOR_RECEIPT", "true").lower() != "false",
            approve_non_fungible=os.getenv("AETHER_APPROVE_NFT", "false").lower() == "true",
            store_path=Path(store_raw).expanduser() if store_raw else None,
            testnet=os.getenv("AETHER_TESTNET", "true").lower() != "false",
        )
        if os.getenv("AETHER_TESTNET") is not None:
            # Pin API URLs to one environment instead of choosing per source network.
            config = config.with_defaulted_urls()
        return config

"""AetherBridge: cross-chain transfer orchestration over CCTP and LayerZero."""

from .annotator import GeminiAnnotator, StaticAnnotator
from .assets import SUPPORTED_ASSETS, AssetCatalog
from .base import SignerBase
from .config import BridgeConfig
from .discovery import AnnouncementBus, LocalWalletAnnouncer, ProviderDiscovery, ProviderHandle
from .exceptions import (
    BridgeError,
    ChainMismatch,
    ConfigurationError,
    EndpointsExhausted,
    ErrorKind,
    InvalidNetwork,
    NetworkNotFound,
    ProofAbandoned,
    SignerUnavailable,
    TransactionFailed,
    TransferInProgress,
    UserRejected,
    ValidationError,
)
from .monitor import BalanceMonitor, HealthMonitor
from .orchestrator import BridgeOrchestrator
from .proofs import ProofStatus, ProofWaiter
from .protocols import CCTPProtocol, LayerZeroProtocol, resolve_protocol, select
from .registry import NetworkRegistry
from .rpc import RpcFallbackClient
from .session import SessionContext
from .signers import JsonRpcWalletSigner, LocalAccountSigner
from .store import JsonFileStore, MemoryStore
from .types import (
    Asset,
    AssetKind,
    Network,
    NetworkId,
    NetworkKind,
    ProtocolKind,
    Stage,
    StageVariant,
    TransferRecord,
    TransferRequest,
)

__version__ = "0.1.0"

__all__ = [
    "AnnouncementBus",
    "Asset",
    "AssetCatalog",
    "AssetKind",
    "BalanceMonitor",
    "BridgeConfig",
    "BridgeError",
    "BridgeOrchestrator",
    "CCTPProtocol",
    "ChainMismatch",
    "ConfigurationError",
    "EndpointsExhausted",
    "ErrorKind",
    "GeminiAnnotator",
    "HealthMonitor",
    "InvalidNetwork",
    "JsonFileStore",
    "JsonRpcWalletSigner",
    "LayerZeroProtocol",
    "LocalAccountSigner",
    "LocalWalletAnnouncer",
    "MemoryStore",
    "Network",
    "NetworkId",
    "NetworkKind",
    "NetworkNotFound",
    "NetworkRegistry",
    "ProofAbandoned",
    "ProofStatus",
    "ProofWaiter",
    "ProtocolKind",
    "ProviderDiscovery",
    "ProviderHandle",
    "RpcFallbackClient",
    "SUPPORTED_ASSETS",
    "SessionContext",
    "SignerBase",
    "SignerUnavailable",
    "Stage",
    "StageVariant",
    "StaticAnnotator",
    "TransactionFailed",
    "TransferInProgress",
    "TransferRecord",
    "TransferRequest",
    "UserRejected",
    "ValidationError",
    "resolve_protocol",
    "select",
]

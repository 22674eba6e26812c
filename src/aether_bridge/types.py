"""Type definitions and data models for the AetherBridge engine."""

import re
import time
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from enum import Enum, IntEnum
from types import MappingProxyType
from typing import Any

from .exceptions import ErrorKind, ValidationError

NATIVE_ADDRESS = "native"

_NETWORK_ID_PATTERN = re.compile(r"^[a-z0-9][a-z0-9_-]*$")


class NetworkKind(str, Enum):
    """Network categories known to the registry."""

    TESTNET = "TESTNET"
    MAINNET = "MAINNET"
    CUSTOM_HUB = "CUSTOM_HUB"


class AssetKind(str, Enum):
    """Asset kinds understood by the protocol selector."""

    NATIVE = "NATIVE"
    FUNGIBLE = "FUNGIBLE"
    NON_FUNGIBLE = "NON_FUNGIBLE"


class ProtocolKind(str, Enum):
    """Bridging protocol families."""

    BURN_MINT = "CCTP"
    MESSAGE_RELAY = "LAYERZERO"


class Stage(IntEnum):
    """Transfer stages in their forward order. FAILED is terminal from anywhere."""

    IDLE = 0
    CHECKING_NETWORK = 1
    APPROVING = 2
    SENDING = 3
    AWAITING_PROOF = 4
    FINALIZING = 5
    COMPLETED = 6
    FAILED = 99

    @property
    def is_terminal(self) -> bool:
        return self in (Stage.COMPLETED, Stage.FAILED)


class StageVariant(str, Enum):
    """Protocol specific flavour of the SENDING, AWAITING_PROOF and FINALIZING stages."""

    BURN = "BURN"
    MESSAGE = "MESSAGE"
    ATTESTATION = "ATTESTATION"
    RELAY_DELIVERY = "RELAY_DELIVERY"
    MINT = "MINT"
    SETTLE = "SETTLE"


class HealthState(str, Enum):
    UNKNOWN = "unknown"
    HEALTHY = "healthy"
    UNREACHABLE = "unreachable"


class ChainRequestResult(str, Enum):
    """Outcome of a wallet chain switch or add request."""

    OK = "ok"
    REJECTED = "rejected"
    UNKNOWN_CHAIN = "unknown-chain"


class Outcome(str, Enum):
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    ABANDONED = "ABANDONED"


@dataclass(frozen=True, order=True)
class NetworkId:
    """Validated network identifier."""

    value: str

    def __post_init__(self) -> None:
        if not isinstance(self.value, str) or not _NETWORK_ID_PATTERN.match(self.value):
            raise ValidationError("Invalid network id", field="network_id", value=self.value)

    def __str__(self) -> str:
        return self.value

    @classmethod
    def parse(cls, value: "str | NetworkId") -> "NetworkId":
        if isinstance(value, NetworkId):
            return value
        return cls(str(value).strip().lower())


@dataclass(frozen=True)
class Network:
    """A chain the bridge can route to, with its protocol contract stack."""

    id: NetworkId
    name: str
    kind: NetworkKind
    chain_id: int
    chain_id_hex: str
    rpc_urls: tuple[str, ...]
    currency: str = "ETH"
    explorer_url: str | None = None
    cctp_token_messenger: str | None = None
    cctp_message_transmitter: str | None = None
    cctp_domain: int | None = None
    lz_endpoint: str | None = None
    lz_eid: int | None = None
    fork_of: NetworkId | None = None

    @property
    def is_custom(self) -> bool:
        return self.kind == NetworkKind.CUSTOM_HUB

    @property
    def is_testnet(self) -> bool:
        return self.kind == NetworkKind.TESTNET

    def chain_definition(self) -> dict[str, Any]:
        """Return the wallet_addEthereumChain parameter object for this network."""

        return {
            "chainId": self.chain_id_hex,
            "chainName": self.name,
            "nativeCurrency": {"name": self.currency, "symbol": self.currency, "decimals": 18},
            "rpcUrls": list(self.rpc_urls),
            "blockExplorerUrls": [self.explorer_url] if self.explorer_url else [],
        }

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id.value,
            "name": self.name,
            "type": self.kind.value,
            "chainId": self.chain_id,
            "chainIdHex": self.chain_id_hex,
            "rpcUrls": list(self.rpc_urls),
            "currency": self.currency,
            "explorerUrl": self.explorer_url,
            "cctpTokenMessenger": self.cctp_token_messenger,
            "cctpMessageTransmitter": self.cctp_message_transmitter,
            "cctpDomain": self.cctp_domain,
            "lzEndpoint": self.lz_endpoint,
            "lzChainId": self.lz_eid,
            "forkOf": self.fork_of.value if self.fork_of else None,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Network":
        """Build a network from its persisted form."""

        raw_kind = str(data.get("type") or data.get("kind") or NetworkKind.CUSTOM_HUB.value)
        # Older stores used FORK / VNET for user declared hubs.
        kind = NetworkKind(raw_kind) if raw_kind in NetworkKind.__members__ else NetworkKind.CUSTOM_HUB

        rpc_urls = data.get("rpcUrls") or data.get("rpc_urls") or []
        if isinstance(rpc_urls, str):
            rpc_urls = [rpc_urls]

        chain_id = int(data.get("chainId", data.get("chain_id", 0)))
        fork_of = data.get("forkOf") or data.get("fork_of")

        return cls(
            id=NetworkId.parse(data["id"]),
            name=str(data.get("name") or data["id"]),
            kind=kind,
            chain_id=chain_id,
            chain_id_hex=str(data.get("chainIdHex") or data.get("chain_id_hex") or hex(chain_id)),
            rpc_urls=tuple(str(url) for url in rpc_urls),
            currency=str(data.get("currency") or "ETH"),
            explorer_url=data.get("explorerUrl") or data.get("explorer_url"),
            cctp_token_messenger=data.get("cctpTokenMessenger"),
            cctp_message_transmitter=data.get("cctpMessageTransmitter"),
            cctp_domain=_optional_int(data.get("cctpDomain")),
            lz_endpoint=data.get("lzEndpoint"),
            lz_eid=_optional_int(data.get("lzChainId")),
            fork_of=NetworkId.parse(fork_of) if fork_of else None,
        )


@dataclass(frozen=True)
class Asset:
    """A bridgeable asset and its contract address per network."""

    symbol: str
    name: str
    decimals: int
    kind: AssetKind
    addresses: Mapping[NetworkId, str]
    logo_url: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "addresses", MappingProxyType(dict(self.addresses)))

    def __hash__(self) -> int:
        return hash((self.symbol, self.kind, tuple(sorted(self.addresses.items()))))

    @property
    def is_native(self) -> bool:
        return self.kind == AssetKind.NATIVE

    @property
    def is_non_fungible(self) -> bool:
        return self.kind == AssetKind.NON_FUNGIBLE

    def address_on(self, network_id: NetworkId) -> str | None:
        return self.addresses.get(network_id)


@dataclass(frozen=True)
class ProviderInfo:
    """Identity metadata announced by a wallet."""

    uuid: str
    name: str
    icon: str = ""
    rdns: str = ""


@dataclass(frozen=True)
class TransferRequest:
    """What the user committed to: move `amount` (or token id) of `asset`."""

    source: NetworkId
    destination: NetworkId
    asset: str
    amount: str
    protocol: ProtocolKind | None = None
    recipient: str | None = None


@dataclass(frozen=True)
class ProofArtifact:
    """Off-chain proof required before the destination-side action."""

    payload: bytes
    message: bytes = b""
    reference: str | None = None


@dataclass
class TransferArtifacts:
    approval_tx: str | None = None
    send_tx: str | None = None
    proof: ProofArtifact | None = None
    finalize_tx: str | None = None

    def copy(self) -> "TransferArtifacts":
        return replace(self)


@dataclass(frozen=True)
class FailureInfo:
    kind: ErrorKind
    message: str
    stage: Stage
    variant: StageVariant | None = None


@dataclass(frozen=True)
class StageEvent:
    """Observable stage change of a transfer attempt."""

    attempt_id: str
    stage: Stage
    variant: StageVariant | None = None
    error: FailureInfo | None = None
    at: float = field(default_factory=time.time)


@dataclass
class TransferAttempt:
    """The single unit of orchestration."""

    id: str
    request: TransferRequest
    asset: Asset
    source: Network
    destination: Network
    protocol: ProtocolKind
    amount_units: int
    stage: Stage = Stage.IDLE
    variant: StageVariant | None = None
    artifacts: TransferArtifacts = field(default_factory=TransferArtifacts)
    history: list[tuple[Stage, StageVariant | None]] = field(default_factory=list)
    error: FailureInfo | None = None
    summary: str | None = None

    @property
    def is_terminal(self) -> bool:
        return self.stage.is_terminal


@dataclass(frozen=True)
class TransferRecord:
    """Snapshot kept after an attempt ends, used for reconciliation and resume."""

    attempt_id: str
    request: TransferRequest
    protocol: ProtocolKind
    outcome: Outcome
    stage: Stage
    variant: StageVariant | None
    artifacts: TransferArtifacts
    error: FailureInfo | None = None
    summary: str | None = None


def _optional_int(value: Any) -> int | None:
    if value is None or value == "":
        return None
    return int(value)

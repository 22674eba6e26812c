"""Common interface for bridging protocol strategies."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

import requests
from web3 import Web3

from ..assets import AssetCatalog
from ..config import BridgeConfig
from ..constants import Selector
from ..exceptions import ConfigurationError
from ..types import Network, ProofArtifact, ProtocolKind, StageVariant, TransferAttempt
from ..utils import encode_call

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ContractCall:
    """A transaction the signer must submit on ``network``."""

    network: Network
    to: str
    data: bytes
    value: int = 0
    action: str = ""


class BridgeProtocol(ABC):
    """Protocol specific steps of a transfer; the orchestrator owns ordering."""

    kind: ProtocolKind
    send_variant: StageVariant
    proof_variant: StageVariant
    finalize_variant: StageVariant

    def __init__(
        self,
        catalog: AssetCatalog,
        session: requests.Session,
        config: BridgeConfig | None = None,
    ) -> None:
        self._catalog = catalog
        self._session = session
        self._config = config or BridgeConfig()

    @abstractmethod
    def spender(self, source: Network) -> str:
        """Contract that receives the allowance on the source network."""

    @abstractmethod
    def build_send(self, attempt: TransferAttempt, sender: str) -> ContractCall:
        pass

    @abstractmethod
    def fetch_proof(self, attempt: TransferAttempt) -> ProofArtifact | None:
        """One poll of the off-chain service; ``None`` while not yet available."""

    @abstractmethod
    def build_finalize(self, attempt: TransferAttempt, sender: str) -> ContractCall | None:
        """Destination-side call, or ``None`` when delivery already settled the transfer."""

    def build_approval(self, attempt: TransferAttempt) -> ContractCall:
        token = self._catalog.resolve_address(attempt.asset, attempt.source)
        spender = Web3.to_checksum_address(self.spender(attempt.source))
        data = encode_call(
            Selector.APPROVE.value, ["address", "uint256"], [spender, attempt.amount_units]
        )
        return ContractCall(network=attempt.source, to=token, data=data, action="approve")

    def recipient(self, attempt: TransferAttempt, sender: str) -> str:
        return Web3.to_checksum_address(attempt.request.recipient or sender)

    def _get_json(self, url: str) -> Any | None:
        """GET ``url``; ``None`` for not-yet-available or transient failures."""

        try:
            response = self._session.get(url, timeout=self._config.rpc.request_timeout)
        except requests.RequestException as exc:  # pragma: no cover - network flake
            logger.debug("Proof poll error for %s: %s", url, exc)
            return None

        if response.status_code == 404:
            logger.debug("Proof not yet available (404) at %s", url)
            return None
        if not 200 <= response.status_code < 300:
            logger.debug("Proof poll returned HTTP %s at %s", response.status_code, url)
            return None

        try:
            return response.json()
        except ValueError:
            logger.debug("Proof poll returned malformed JSON at %s", url)
            return None


def require(network: Network, field: str) -> Any:
    value = getattr(network, field)
    if value is None:
        raise ConfigurationError(
            f"{network.name} has no {field} configured",
            details={"network": network.id.value, "field": field},
        )
    return value


def records(json_blob: Any, key: str) -> list[Mapping[str, Any]]:
    """Extract a list of mapping records found at ``key`` or ``data.key``."""

    if isinstance(json_blob, Mapping):
        direct = json_blob.get(key)
        if isinstance(direct, list):
            return [entry for entry in direct if isinstance(entry, Mapping)]
        data = json_blob.get("data")
        if isinstance(data, Mapping):
            nested = data.get(key)
            if isinstance(nested, list):
                return [entry for entry in nested if isinstance(entry, Mapping)]
    return []

"""Exception hierarchy for the AetherBridge orchestration engine."""

from enum import Enum
from typing import Any


class ErrorKind(str, Enum):
    """Machine readable failure categories surfaced on transfer records."""

    ENDPOINTS_EXHAUSTED = "EndpointsExhausted"
    USER_REJECTED = "UserRejected"
    SIGNER_UNAVAILABLE = "SignerUnavailable"
    INVALID_NETWORK = "InvalidNetwork"
    VALIDATION = "ValidationError"
    CONFIGURATION = "ConfigurationError"
    TRANSFER_IN_PROGRESS = "TransferInProgress"
    CHAIN_MISMATCH = "ChainMismatch"
    TRANSACTION_FAILED = "TransactionFailed"
    PROOF_ABANDONED = "ProofAbandoned"
    UNEXPECTED = "Unexpected"


class BridgeError(Exception):
    """Base exception for all bridge errors."""

    kind: ErrorKind = ErrorKind.UNEXPECTED

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    @property
    def user_message(self) -> str:
        return self.message


class EndpointsExhausted(BridgeError):
    """Raised when every RPC endpoint of a fallback list has failed."""

    kind = ErrorKind.ENDPOINTS_EXHAUSTED

    def __init__(
        self,
        message: str,
        endpoints: list[str] | None = None,
        method: str | None = None,
        details: dict | None = None,
    ):
        super().__init__(message, details)
        self.endpoints = endpoints or []
        self.method = method


class UserRejected(BridgeError):
    """Raised when the signer declined a prompt."""

    kind = ErrorKind.USER_REJECTED

    def __init__(self, message: str, action: str | None = None, details: dict | None = None):
        super().__init__(message, details)
        self.action = action

    @property
    def user_message(self) -> str:
        if self.action:
            return f"The request to {self.action} was declined in your wallet. You can retry when ready."
        return "The request was declined in your wallet. You can retry when ready."


class SignerUnavailable(BridgeError):
    """Raised when no signer is bound or the bound signer cannot be reached."""

    kind = ErrorKind.SIGNER_UNAVAILABLE

    @property
    def user_message(self) -> str:
        return f"No wallet is available: {self.message}"


class InvalidNetwork(BridgeError):
    """Raised when a network definition fails registry validation."""

    kind = ErrorKind.INVALID_NETWORK

    def __init__(
        self,
        message: str,
        network_id: str | None = None,
        field: str | None = None,
        details: dict | None = None,
    ):
        super().__init__(message, details)
        self.network_id = network_id
        self.field = field


class NetworkNotFound(InvalidNetwork):
    """Raised when a network id is not present in the registry."""

    def __init__(self, network_id: str):
        super().__init__(f"Unknown network: {network_id}", network_id=network_id)


class ValidationError(BridgeError):
    """Raised when input validation fails."""

    kind = ErrorKind.VALIDATION

    def __init__(
        self,
        message: str,
        field: str | None = None,
        value: Any | None = None,
        details: dict | None = None,
    ):
        super().__init__(message, details)
        self.field = field
        self.value = value


class ConfigurationError(BridgeError):
    """Raised when an asset or network is missing required static configuration."""

    kind = ErrorKind.CONFIGURATION


class TransferInProgress(BridgeError):
    """Raised when a new transfer is requested while another one is active."""

    kind = ErrorKind.TRANSFER_IN_PROGRESS

    def __init__(self, message: str, stage: str | None = None, details: dict | None = None):
        super().__init__(message, details)
        self.stage = stage


class ChainMismatch(BridgeError):
    """Raised when the signer is not on the chain a submission requires."""

    kind = ErrorKind.CHAIN_MISMATCH

    def __init__(self, expected: int, actual: int):
        super().__init__(
            f"Signer is on chain {actual} but chain {expected} is required",
            details={"expected": expected, "actual": actual},
        )
        self.expected = expected
        self.actual = actual


class TransactionFailed(BridgeError):
    """Raised when a submitted transaction reverted or was never confirmed."""

    kind = ErrorKind.TRANSACTION_FAILED

    def __init__(
        self,
        message: str,
        tx_hash: str | None = None,
        action: str | None = None,
        details: dict | None = None,
    ):
        super().__init__(message, details)
        self.tx_hash = tx_hash
        self.action = action


class ProofAbandoned(BridgeError):
    """Raised when a proof wait was abandoned before the artifact arrived."""

    kind = ErrorKind.PROOF_ABANDONED

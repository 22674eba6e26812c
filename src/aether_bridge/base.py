"""Wallet signer base interface."""

from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any

from .types import ChainRequestResult


class SignerBase(ABC):
    """Opaque wallet that holds keys and produces signatures.

    Every method may raise ``UserRejected`` or ``SignerUnavailable``.
    """

    @abstractmethod
    def request_accounts(self) -> str:
        pass

    @abstractmethod
    def active_chain(self) -> int:
        pass

    @abstractmethod
    def switch_chain(self, chain_id_hex: str) -> ChainRequestResult:
        pass

    @abstractmethod
    def add_chain(self, definition: Mapping[str, Any]) -> ChainRequestResult:
        pass

    @abstractmethod
    def send_transaction(self, to: str, data: bytes, value: int = 0) -> str:
        pass

    @abstractmethod
    def read_only_call(self, to: str, data: bytes) -> bytes:
        pass

    def client_version(self) -> str:
        """Free-form wallet identity string used for naming injected signers."""
        return ""

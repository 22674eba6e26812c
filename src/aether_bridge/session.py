"""Explicit connected-wallet session passed into every signer-facing operation."""

from __future__ import annotations

import logging

from .base import SignerBase
from .discovery import ProviderHandle
from .exceptions import SignerUnavailable

logger = logging.getLogger(__name__)


class SessionContext:
    """Binds one discovered provider and its account for the lifetime of a connection."""

    def __init__(self, provider: ProviderHandle | None, address: str | None = None) -> None:
        self._provider = provider
        self._address = address
        self._closed = False

    @classmethod
    def connect(cls, provider: ProviderHandle) -> SessionContext:
        """Ask the provider for its account and open a session bound to it."""
        address = provider.signer.request_accounts()
        logger.info("Connected wallet %s (%s)", provider.name, address)
        return cls(provider, address)

    @property
    def provider(self) -> ProviderHandle | None:
        return None if self._closed else self._provider

    @property
    def address(self) -> str:
        if self._closed or not self._address:
            raise SignerUnavailable("No connected account; connect a wallet first")
        return self._address

    @property
    def is_connected(self) -> bool:
        return not self._closed and self._provider is not None and bool(self._address)

    def require_signer(self) -> SignerBase:
        if self._closed or self._provider is None:
            raise SignerUnavailable("No wallet bound to this session")
        return self._provider.signer

    def close(self) -> None:
        self._closed = True

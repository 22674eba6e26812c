"""Bridging protocol strategies and the selector that chooses between them."""

from __future__ import annotations

import requests

from ..assets import AssetCatalog
from ..config import BridgeConfig
from ..types import ProtocolKind
from .base import BridgeProtocol, ContractCall
from .cctp import CCTPProtocol
from .layerzero import LayerZeroProtocol
from .selector import override_allowed, resolve_protocol, select


def build_protocols(
    catalog: AssetCatalog,
    session: requests.Session | None = None,
    config: BridgeConfig | None = None,
) -> dict[ProtocolKind, BridgeProtocol]:
    """Instantiate one strategy per protocol family sharing an HTTP session."""
    http = session or requests.Session()
    return {
        ProtocolKind.BURN_MINT: CCTPProtocol(catalog, http, config),
        ProtocolKind.MESSAGE_RELAY: LayerZeroProtocol(catalog, http, config),
    }


__all__ = [
    "BridgeProtocol",
    "ContractCall",
    "CCTPProtocol",
    "LayerZeroProtocol",
    "build_protocols",
    "override_allowed",
    "resolve_protocol",
    "select",
]

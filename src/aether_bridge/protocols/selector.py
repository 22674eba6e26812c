"""Protocol choice per asset."""

from __future__ import annotations

from ..constants import CANONICAL_STABLECOIN
from ..exceptions import ValidationError
from ..types import Asset, AssetKind, ProtocolKind


def select(asset: Asset) -> ProtocolKind:
    """Pick the bridging protocol for ``asset``.

    Non-fungible and native assets always use the message relay; the
    canonical stablecoin burns and mints; anything else defaults to the relay.
    """
    if asset.kind in (AssetKind.NON_FUNGIBLE, AssetKind.NATIVE):
        return ProtocolKind.MESSAGE_RELAY
    if asset.symbol.upper() == CANONICAL_STABLECOIN:
        return ProtocolKind.BURN_MINT
    return ProtocolKind.MESSAGE_RELAY


def override_allowed(asset: Asset) -> bool:
    """Only assets that fell through to the default rule may pick another protocol."""
    return asset.kind == AssetKind.FUNGIBLE and asset.symbol.upper() != CANONICAL_STABLECOIN


def resolve_protocol(asset: Asset, override: ProtocolKind | None = None) -> ProtocolKind:
    chosen = select(asset)
    if override is None or override == chosen:
        return chosen
    if not override_allowed(asset):
        raise ValidationError(
            f"{asset.symbol} must be bridged with {chosen.value}",
            field="protocol",
            value=override.value,
        )
    return override

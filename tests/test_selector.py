from __future__ import annotations

import pytest

from aether_bridge.constants import MAINNET, SEPOLIA
from aether_bridge.exceptions import ValidationError
from aether_bridge.protocols import resolve_protocol, select
from aether_bridge.types import Asset, AssetKind, ProtocolKind

DAI = Asset(
    symbol="DAI",
    name="Dai",
    decimals=18,
    kind=AssetKind.FUNGIBLE,
    addresses={SEPOLIA: "0x0000000000000000000000000000000000000D41"},
)


def _asset(symbol: str, kind: AssetKind) -> Asset:
    return Asset(
        symbol=symbol, name=symbol, decimals=0, kind=kind, addresses={MAINNET: "0x" + "11" * 20}
    )


def test_usdc_uses_burn_mint(catalog) -> None:
    assert select(catalog.get("USDC")) == ProtocolKind.BURN_MINT


def test_native_uses_relay(catalog) -> None:
    assert select(catalog.get("ETH")) == ProtocolKind.MESSAGE_RELAY


@pytest.mark.parametrize("symbol", ["AZR", "USDC", "usdc"])
def test_non_fungible_always_uses_relay_regardless_of_symbol(symbol: str) -> None:
    assert select(_asset(symbol, AssetKind.NON_FUNGIBLE)) == ProtocolKind.MESSAGE_RELAY


def test_other_fungible_defaults_to_relay() -> None:
    assert select(DAI) == ProtocolKind.MESSAGE_RELAY


def test_select_is_pure() -> None:
    asset = _asset("USDC", AssetKind.FUNGIBLE)
    assert {select(asset) for _ in range(5)} == {ProtocolKind.BURN_MINT}


def test_override_allowed_for_default_branch_only(catalog) -> None:
    assert resolve_protocol(DAI, ProtocolKind.BURN_MINT) == ProtocolKind.BURN_MINT

    with pytest.raises(ValidationError) as excinfo:
        resolve_protocol(catalog.get("AZR"), ProtocolKind.BURN_MINT)
    assert excinfo.value.field == "protocol"

    with pytest.raises(ValidationError):
        resolve_protocol(catalog.get("USDC"), ProtocolKind.MESSAGE_RELAY)


def test_matching_override_is_accepted(catalog) -> None:
    usdc = catalog.get("USDC")
    assert resolve_protocol(usdc, ProtocolKind.BURN_MINT) == ProtocolKind.BURN_MINT
    assert resolve_protocol(usdc) == ProtocolKind.BURN_MINT

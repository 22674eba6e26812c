"""Tests for aether_bridge.types."""

import pytest

from aether_bridge.constants import BUILTIN_NETWORKS, MAINNET, SEPOLIA
from aether_bridge.exceptions import ValidationError
from aether_bridge.types import (
    Asset,
    AssetKind,
    Network,
    NetworkId,
    NetworkKind,
    Stage,
    TransferArtifacts,
)


def test_network_id_normalises_and_validates() -> None:
    assert NetworkId.parse(" Sepolia ") == SEPOLIA
    assert NetworkId.parse(SEPOLIA) is SEPOLIA
    with pytest.raises(ValidationError):
        NetworkId("bad id!")


def test_stage_order_and_terminal_states() -> None:
    order = [
        Stage.IDLE,
        Stage.CHECKING_NETWORK,
        Stage.APPROVING,
        Stage.SENDING,
        Stage.AWAITING_PROOF,
        Stage.FINALIZING,
        Stage.COMPLETED,
    ]
    assert order == sorted(order)
    assert Stage.COMPLETED.is_terminal
    assert Stage.FAILED.is_terminal
    assert not Stage.AWAITING_PROOF.is_terminal


def test_network_round_trips_through_persisted_form() -> None:
    sepolia = BUILTIN_NETWORKS[0]
    assert Network.from_dict(sepolia.to_dict()) == sepolia


def test_network_from_dict_maps_legacy_hub_kinds() -> None:
    network = Network.from_dict(
        {
            "id": "vnet-1",
            "name": "Virtual",
            "type": "VNET",
            "chainId": 73571,
            "rpcUrls": "https://virtual.rpc",
            "forkOf": "mainnet",
        }
    )

    assert network.kind == NetworkKind.CUSTOM_HUB
    assert network.is_custom
    assert network.chain_id_hex == "0x11f63"
    assert network.rpc_urls == ("https://virtual.rpc",)
    assert network.fork_of == MAINNET


def test_chain_definition_for_wallets() -> None:
    definition = BUILTIN_NETWORKS[0].chain_definition()
    assert definition["chainId"] == "0xaa36a7"
    assert definition["nativeCurrency"]["decimals"] == 18
    assert definition["blockExplorerUrls"] == ["https://sepolia.etherscan.io"]


def test_asset_addresses_are_read_only() -> None:
    asset = Asset(
        symbol="TKN",
        name="Token",
        decimals=18,
        kind=AssetKind.FUNGIBLE,
        addresses={SEPOLIA: "0x" + "22" * 20},
    )

    with pytest.raises(TypeError):
        asset.addresses[MAINNET] = "0x" + "33" * 20  # type: ignore[index]
    assert asset.address_on(MAINNET) is None
    assert hash(asset) == hash(asset)


def test_artifact_copy_is_independent() -> None:
    artifacts = TransferArtifacts(send_tx="0x01")
    clone = artifacts.copy()
    clone.finalize_tx = "0x02"
    assert artifacts.finalize_tx is None
    assert clone.send_tx == "0x01"

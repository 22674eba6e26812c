from __future__ import annotations

import pytest
from eth_abi import decode as abi_decode
from web3 import Web3

from aether_bridge.config import BridgeConfig, ProofConfig
from aether_bridge.constants import LZ_EIDS, LZ_ENDPOINTS, MAINNET, SEPOLIA
from aether_bridge.exceptions import TransactionFailed
from aether_bridge.protocols import LayerZeroProtocol
from aether_bridge.protocols.layerzero import ZERO_ADDRESS
from aether_bridge.types import ProtocolKind, TransferAttempt, TransferRequest
from aether_bridge.utils import function_selector
from conftest import SENDER, DummySession

SEND_TX = "0x" + "cd" * 32
DELIVERY_TX = "0x" + "ef" * 32
CONFIG = BridgeConfig(proof=ProofConfig(relay_scan_url="https://scan"))


def _attempt(registry, catalog, symbol: str, amount_units: int) -> TransferAttempt:
    return TransferAttempt(
        id="attempt-lz",
        request=TransferRequest(
            source=SEPOLIA, destination=MAINNET, asset=symbol, amount=str(amount_units)
        ),
        asset=catalog.get(symbol),
        source=registry.get(SEPOLIA),
        destination=registry.get(MAINNET),
        protocol=ProtocolKind.MESSAGE_RELAY,
        amount_units=amount_units,
    )


def _decode_send(data: bytes):
    assert data[:4] == function_selector("send((uint32,bytes32,bytes,bytes,bool),address)")
    return abi_decode(["(uint32,bytes32,bytes,bytes,bool)", "address"], data[4:])


def test_nft_send_carries_token_id_and_fixed_fee(registry, catalog) -> None:
    protocol = LayerZeroProtocol(catalog, DummySession(), CONFIG)  # type: ignore[arg-type]

    call = protocol.build_send(_attempt(registry, catalog, "AZR", 7), SENDER)

    assert call.to == Web3.to_checksum_address(LZ_ENDPOINTS[SEPOLIA])
    assert call.value == CONFIG.nft_relay_fee_wei
    (eid, receiver, message, options, pay_in_lz), refund = _decode_send(call.data)
    assert eid == LZ_EIDS[MAINNET]
    assert receiver[-20:] == Web3.to_bytes(hexstr=SENDER)
    token, recipient, token_id = abi_decode(["address", "address", "uint256"], message)
    assert Web3.to_checksum_address(token) == Web3.to_checksum_address(
        catalog.get("AZR").address_on(SEPOLIA)
    )
    assert token_id == 7
    assert options == b""
    assert pay_in_lz is False
    assert Web3.to_checksum_address(refund) == Web3.to_checksum_address(SENDER)


def test_native_send_value_includes_amount(registry, catalog) -> None:
    protocol = LayerZeroProtocol(catalog, DummySession(), CONFIG)  # type: ignore[arg-type]
    amount = 10**17

    call = protocol.build_send(_attempt(registry, catalog, "ETH", amount), SENDER)

    assert call.value == amount + CONFIG.relay_fee_wei
    (_, _, message, _, _), _ = _decode_send(call.data)
    token, _, units = abi_decode(["address", "address", "uint256"], message)
    assert token == ZERO_ADDRESS
    assert units == amount


def test_delivery_settles_with_destination_tx(registry, catalog) -> None:
    responses = [
        {"data": [{"status": {"name": "INFLIGHT"}}]},
        {
            "data": [
                {
                    "status": {"name": "DELIVERED"},
                    "destination": {"tx": {"txHash": DELIVERY_TX}},
                }
            ]
        },
    ]
    session = DummySession(lambda url, kwargs: responses.pop(0))
    protocol = LayerZeroProtocol(catalog, session, CONFIG)  # type: ignore[arg-type]
    attempt = _attempt(registry, catalog, "AZR", 7)
    attempt.artifacts.send_tx = SEND_TX

    assert protocol.fetch_proof(attempt) is None
    proof = protocol.fetch_proof(attempt)

    assert proof is not None
    assert proof.reference == DELIVERY_TX
    assert session.calls[0][1] == f"https://scan/v1/messages/tx/{SEND_TX}"
    assert protocol.build_finalize(attempt, SENDER) is None


def test_failed_delivery_raises(registry, catalog) -> None:
    session = DummySession(lambda url, kwargs: {"data": [{"status": {"name": "FAILED"}}]})
    protocol = LayerZeroProtocol(catalog, session, CONFIG)  # type: ignore[arg-type]
    attempt = _attempt(registry, catalog, "AZR", 7)
    attempt.artifacts.send_tx = SEND_TX

    with pytest.raises(TransactionFailed) as excinfo:
        protocol.fetch_proof(attempt)
    assert excinfo.value.tx_hash == SEND_TX


def test_scan_url_follows_source_network_kind(registry, catalog) -> None:
    protocol = LayerZeroProtocol(catalog, DummySession(), BridgeConfig())  # type: ignore[arg-type]

    assert protocol.scan_base_url(registry.get(SEPOLIA)) == "https://scan-testnet.layerzero-api.com"
    assert protocol.scan_base_url(registry.get(MAINNET)) == "https://scan.layerzero-api.com"

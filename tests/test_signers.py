from __future__ import annotations

import pytest
import requests
from web3 import Web3

from aether_bridge.exceptions import SignerUnavailable, TransactionFailed, UserRejected
from aether_bridge.signers import JsonRpcWalletSigner, LocalAccountSigner
from aether_bridge.types import ChainRequestResult
from conftest import DummySession

WALLET_URL = "http://127.0.0.1:1248"
ACCOUNT = "0x00000000000000000000000000000000000000a1"


def _signer(answers: dict[str, object]) -> tuple[JsonRpcWalletSigner, DummySession]:
    def handler(url, kwargs):
        answer = answers[kwargs["json"]["method"]]
        if isinstance(answer, Exception):
            raise answer
        return answer

    session = DummySession(handler)
    return JsonRpcWalletSigner(WALLET_URL, session=session), session  # type: ignore[arg-type]


def _error(code: int, message: str = "nope") -> dict:
    return {"jsonrpc": "2.0", "id": 1, "error": {"code": code, "message": message}}


def test_request_accounts_and_chain() -> None:
    signer, _ = _signer(
        {"eth_requestAccounts": {"result": [ACCOUNT]}, "eth_chainId": {"result": "0xaa36a7"}}
    )

    assert signer.request_accounts() == Web3.to_checksum_address(ACCOUNT)
    assert signer.active_chain() == 11155111


def test_rejected_connection() -> None:
    signer, _ = _signer({"eth_requestAccounts": _error(4001)})

    with pytest.raises(UserRejected):
        signer.request_accounts()


@pytest.mark.parametrize(
    "answer, expected",
    [
        ({"result": None}, ChainRequestResult.OK),
        (_error(4001), ChainRequestResult.REJECTED),
        (_error(4902), ChainRequestResult.UNKNOWN_CHAIN),
        (_error(-32603, "Unrecognized chain ID"), ChainRequestResult.UNKNOWN_CHAIN),
    ],
)
def test_switch_chain_results(answer, expected) -> None:
    signer, session = _signer({"wallet_switchEthereumChain": answer})

    assert signer.switch_chain("0x1") == expected
    assert session.calls[0][2]["json"]["params"] == [{"chainId": "0x1"}]


def test_disconnected_wallet_is_unavailable() -> None:
    signer, _ = _signer({"eth_chainId": _error(4900)})

    with pytest.raises(SignerUnavailable):
        signer.active_chain()


def test_transport_failure_is_unavailable() -> None:
    signer, _ = _signer({"eth_chainId": requests.ConnectionError("down")})

    with pytest.raises(SignerUnavailable):
        signer.active_chain()


def test_send_transaction_encodes_hex_fields() -> None:
    signer, session = _signer(
        {"eth_requestAccounts": {"result": [ACCOUNT]}, "eth_sendTransaction": {"result": "0xabc"}}
    )

    assert signer.send_transaction("0xdef", b"\x12\x34", 5) == "0xabc"
    tx = session.calls[-1][2]["json"]["params"][0]
    assert tx["data"] == "0x1234"
    assert tx["value"] == "0x5"


def test_reverting_send_is_transaction_failure() -> None:
    signer, _ = _signer(
        {"eth_requestAccounts": {"result": [ACCOUNT]}, "eth_sendTransaction": _error(-32000)}
    )

    with pytest.raises(TransactionFailed):
        signer.send_transaction("0xdef", b"")


def test_client_version_falls_back_to_empty() -> None:
    signer, _ = _signer({"web3_clientVersion": requests.Timeout("slow")})

    assert signer.client_version() == ""


def test_local_account_signer_switches_only_to_known_chains() -> None:
    signer = LocalAccountSigner("0x" + "11" * 32, {11155111: ["https://rpc.sepolia.org"]})

    assert signer.request_accounts() == signer.address
    assert signer.active_chain() == 11155111
    assert signer.switch_chain("0x1") == ChainRequestResult.UNKNOWN_CHAIN
    assert signer.add_chain({"chainId": "0x1", "rpcUrls": ["https://eth.llamarpc.com"]}) == (
        ChainRequestResult.OK
    )
    assert signer.switch_chain("0x1") == ChainRequestResult.OK
    assert signer.active_chain() == 1

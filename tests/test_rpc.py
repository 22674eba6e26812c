from __future__ import annotations

import pytest
import requests

from aether_bridge.exceptions import EndpointsExhausted
from aether_bridge.rpc import RpcFallbackClient
from conftest import DummyResponse, DummySession

ENDPOINTS = ["https://a", "https://b", "https://c"]


def _client(handler) -> tuple[RpcFallbackClient, DummySession]:
    session = DummySession(handler)
    return RpcFallbackClient(session=session), session  # type: ignore[arg-type]


def test_first_success_wins_and_later_endpoints_are_not_contacted() -> None:
    client, session = _client(lambda url, kwargs: {"jsonrpc": "2.0", "id": 1, "result": url})

    assert client.call(ENDPOINTS, "eth_blockNumber") == "https://a"
    assert [url for _, url, _ in session.calls] == ["https://a"]


def test_falls_back_past_transport_http_and_rpc_errors() -> None:
    def handler(url, kwargs):
        if url == "https://a":
            raise requests.ConnectionError("refused")
        if url == "https://b":
            return DummyResponse({"error": {"code": -32000, "message": "boom"}})
        return {"result": "0x10"}

    client, session = _client(handler)

    assert client.call(ENDPOINTS, "eth_blockNumber") == "0x10"
    assert [url for _, url, _ in session.calls] == ENDPOINTS


def test_request_body_is_json_rpc() -> None:
    client, session = _client(lambda url, kwargs: {"result": "0x1"})

    client.call(["https://a"], "eth_getBalance", ["0xabc", "latest"])

    _, _, kwargs = session.calls[0]
    body = kwargs["json"]
    assert body["jsonrpc"] == "2.0"
    assert body["method"] == "eth_getBalance"
    assert body["params"] == ["0xabc", "latest"]
    assert kwargs["timeout"] == client.request_timeout


def test_all_failures_raise_endpoints_exhausted_after_trying_each() -> None:
    def handler(url, kwargs):
        if url == "https://a":
            return DummyResponse(status_code=502)
        if url == "https://b":
            return DummyResponse(raw="<html>")
        return {"jsonrpc": "2.0"}

    client, session = _client(handler)

    with pytest.raises(EndpointsExhausted) as excinfo:
        client.call(ENDPOINTS, "eth_chainId")

    assert [url for _, url, _ in session.calls] == ENDPOINTS
    err = excinfo.value
    assert err.endpoints == ENDPOINTS
    assert err.method == "eth_chainId"
    assert set(err.details["failures"]) == set(ENDPOINTS)


def test_empty_endpoint_list_is_exhausted() -> None:
    client, session = _client(lambda url, kwargs: {"result": "0x1"})

    with pytest.raises(EndpointsExhausted):
        client.call([], "eth_chainId")
    assert session.calls == []


def test_null_result_is_accepted() -> None:
    client, _ = _client(lambda url, kwargs: {"result": None})

    assert client.get_transaction_receipt(["https://a"], "0x01") is None


def test_reachability_never_raises() -> None:
    def handler(url, kwargs):
        raise requests.Timeout("slow")

    client, _ = _client(handler)

    assert client.reachability(ENDPOINTS) is False


def test_helpers_decode_quantities() -> None:
    client, session = _client(lambda url, kwargs: {"result": "0xff"})

    assert client.block_number(["https://a"]) == 255
    assert client.get_balance(["https://a"], "0xabc") == 255

    client.eth_call(["https://a"], "0xdef", b"\x01\x02")
    _, _, kwargs = session.calls[-1]
    assert kwargs["json"]["params"][0] == {"to": "0xdef", "data": "0x0102"}

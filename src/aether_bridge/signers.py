"""Concrete wallet signers: EIP-1193 JSON-RPC wallets and local keys."""

from __future__ import annotations

import itertools
import logging
from collections.abc import Mapping, Sequence
from typing import Any, cast

import requests
from eth_account import Account
from eth_account.signers.local import LocalAccount
from web3 import HTTPProvider, Web3
from web3.middleware import SignAndSendRawMiddlewareBuilder

from .base import SignerBase
from .config import DEFAULT_REQUEST_TIMEOUT
from .exceptions import SignerUnavailable, TransactionFailed, UserRejected, ValidationError
from .types import ChainRequestResult
from .utils import parse_chain_id

logger = logging.getLogger(__name__)

# EIP-1193 / EIP-3326 provider error codes
USER_REJECTED_CODE = 4001
UNAUTHORIZED_CODE = 4100
DISCONNECTED_CODES = (4900, 4901)
UNRECOGNIZED_CHAIN_CODE = 4902

_SEND_METHODS = ("eth_sendTransaction", "eth_call")
_request_ids = itertools.count(1)


class _UnknownChain(Exception):
    pass


class JsonRpcWalletSigner(SignerBase):
    """Wallet reachable through an EIP-1193 JSON-RPC bridge over HTTP (e.g. Frame)."""

    def __init__(
        self,
        url: str,
        *,
        session: requests.Session | None = None,
        request_timeout: float = DEFAULT_REQUEST_TIMEOUT,
    ) -> None:
        self.url = url
        self._session = session or requests.Session()
        self._request_timeout = request_timeout
        self._account: str | None = None
        self._client_version: str | None = None

    def request_accounts(self) -> str:
        accounts = self._request("eth_requestAccounts", [])
        if not accounts:
            raise UserRejected("Connection denied by user.", action="connect your wallet")
        self._account = Web3.to_checksum_address(accounts[0])
        return self._account

    def active_chain(self) -> int:
        return parse_chain_id(self._request("eth_chainId", []))

    def switch_chain(self, chain_id_hex: str) -> ChainRequestResult:
        try:
            self._request("wallet_switchEthereumChain", [{"chainId": chain_id_hex}])
        except _UnknownChain:
            return ChainRequestResult.UNKNOWN_CHAIN
        except UserRejected:
            return ChainRequestResult.REJECTED
        return ChainRequestResult.OK

    def add_chain(self, definition: Mapping[str, Any]) -> ChainRequestResult:
        try:
            self._request("wallet_addEthereumChain", [dict(definition)])
        except UserRejected:
            return ChainRequestResult.REJECTED
        return ChainRequestResult.OK

    def send_transaction(self, to: str, data: bytes, value: int = 0) -> str:
        sender = self._account or self.request_accounts()
        tx = {"from": sender, "to": to, "data": "0x" + data.hex(), "value": hex(value)}
        return str(self._request("eth_sendTransaction", [tx]))

    def read_only_call(self, to: str, data: bytes) -> bytes:
        result = self._request("eth_call", [{"to": to, "data": "0x" + data.hex()}, "latest"])
        return Web3.to_bytes(hexstr=result) if result else b""

    def client_version(self) -> str:
        if self._client_version is None:
            try:
                self._client_version = str(self._request("web3_clientVersion", []))
            except (SignerUnavailable, UserRejected, TransactionFailed):
                self._client_version = ""
        return self._client_version

    def _request(self, method: str, params: Sequence[Any]) -> Any:
        body = {"jsonrpc": "2.0", "method": method, "params": list(params), "id": next(_request_ids)}
        try:
            response = self._session.post(self.url, json=body, timeout=self._request_timeout)
            response.raise_for_status()
            payload = response.json()
        except (requests.RequestException, ValueError) as exc:
            raise SignerUnavailable(
                f"Wallet at {self.url} is unreachable", details={"error": str(exc)}
            ) from exc

        error = payload.get("error") if isinstance(payload, Mapping) else None
        if error:
            self._raise_for_error(method, error)
        if not isinstance(payload, Mapping) or "result" not in payload:
            raise SignerUnavailable(
                f"Malformed wallet response for {method}", details={"payload": payload}
            )
        return payload["result"]

    def _raise_for_error(self, method: str, error: Any) -> None:
        code = error.get("code") if isinstance(error, Mapping) else None
        message = error.get("message", str(error)) if isinstance(error, Mapping) else str(error)

        if code == USER_REJECTED_CODE:
            raise UserRejected(message, action=method)
        if code == UNRECOGNIZED_CHAIN_CODE:
            raise _UnknownChain(message)
        if code == UNAUTHORIZED_CODE or code in DISCONNECTED_CODES:
            raise SignerUnavailable(message, details={"code": code})
        if method == "wallet_switchEthereumChain":
            # Many wallets answer an unrecognised chain with -32603 instead of 4902.
            raise _UnknownChain(message)
        if method in _SEND_METHODS:
            raise TransactionFailed(message, action=method, details={"code": code})
        raise SignerUnavailable(message, details={"code": code, "method": method})


class LocalAccountSigner(SignerBase):
    """Sign with a local private key through web3's signing middleware."""

    def __init__(
        self,
        private_key: str,
        chains: Mapping[int, Sequence[str]] | None = None,
        *,
        request_timeout: float = DEFAULT_REQUEST_TIMEOUT,
    ) -> None:
        try:
            self._account = cast(LocalAccount, Account.from_key(private_key))
        except Exception as exc:  # pragma: no cover
            raise ValidationError(
                "Failed to derive signer account from provided private key",
                field="private_key",
                details={"error": str(exc)},
            ) from exc

        self._chains: dict[int, tuple[str, ...]] = {
            chain_id: tuple(urls) for chain_id, urls in (chains or {}).items() if urls
        }
        self._request_timeout = request_timeout
        self._web3_by_chain: dict[int, Web3] = {}
        self._chain_id: int | None = next(iter(self._chains), None)

    @property
    def address(self) -> str:
        return self._account.address

    def request_accounts(self) -> str:
        return self._account.address

    def active_chain(self) -> int:
        if self._chain_id is None:
            raise SignerUnavailable("Local signer has no chain configured")
        return self._chain_id

    def switch_chain(self, chain_id_hex: str) -> ChainRequestResult:
        chain_id = parse_chain_id(chain_id_hex)
        if chain_id not in self._chains:
            return ChainRequestResult.UNKNOWN_CHAIN
        self._chain_id = chain_id
        logger.debug("Local signer switched to chain %s", chain_id)
        return ChainRequestResult.OK

    def add_chain(self, definition: Mapping[str, Any]) -> ChainRequestResult:
        chain_id = parse_chain_id(definition["chainId"])
        urls = tuple(definition.get("rpcUrls") or ())
        if not urls:
            raise ValidationError("Chain definition has no RPC URLs", field="rpcUrls")
        self._chains[chain_id] = urls
        self._web3_by_chain.pop(chain_id, None)
        return ChainRequestResult.OK

    def send_transaction(self, to: str, data: bytes, value: int = 0) -> str:
        web3 = self._web3()
        tx = {
            "from": self._account.address,
            "to": Web3.to_checksum_address(to),
            "data": data,
            "value": value,
        }
        try:
            tx_hash = web3.eth.send_transaction(tx)  # type: ignore[arg-type]
        except requests.RequestException as exc:
            raise SignerUnavailable(
                "Local signer RPC unreachable", details={"error": str(exc)}
            ) from exc
        except Exception as exc:  # pragma: no cover
            raise TransactionFailed(
                "Failed to submit transaction", action="send", details={"error": str(exc)}
            ) from exc
        return tx_hash.to_0x_hex()

    def read_only_call(self, to: str, data: bytes) -> bytes:
        web3 = self._web3()
        try:
            return bytes(web3.eth.call({"to": Web3.to_checksum_address(to), "data": data}))
        except requests.RequestException as exc:
            raise SignerUnavailable(
                "Local signer RPC unreachable", details={"error": str(exc)}
            ) from exc

    def client_version(self) -> str:
        return "LocalAccount/eth-account"

    def _web3(self) -> Web3:
        chain_id = self.active_chain()
        web3 = self._web3_by_chain.get(chain_id)
        if web3 is None:
            provider = HTTPProvider(
                self._chains[chain_id][0], request_kwargs={"timeout": self._request_timeout}
            )
            web3 = Web3(provider)
            web3.middleware_onion.add(SignAndSendRawMiddlewareBuilder.build(self._account))  # type: ignore[arg-type]
            web3.eth.default_account = self._account.address
            self._web3_by_chain[chain_id] = web3
        return web3

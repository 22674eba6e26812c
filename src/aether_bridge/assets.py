"""Catalog of bridgeable assets and their per-network contract addresses."""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable, Mapping

from eth_abi import decode as abi_decode
from web3 import Web3

from .constants import MAINNET, SEPOLIA, Selector
from .exceptions import ConfigurationError, EndpointsExhausted, NetworkNotFound, ValidationError
from .registry import NetworkRegistry
from .rpc import RpcFallbackClient
from .types import NATIVE_ADDRESS, Asset, AssetKind, Network, NetworkId
from .utils import function_selector

logger = logging.getLogger(__name__)

SUPPORTED_ASSETS: tuple[Asset, ...] = (
    Asset(
        symbol="ETH",
        name="Ethereum",
        decimals=18,
        kind=AssetKind.NATIVE,
        addresses={SEPOLIA: NATIVE_ADDRESS, MAINNET: NATIVE_ADDRESS},
        logo_url="https://raw.githubusercontent.com/trustwallet/assets/master/blockchains/ethereum/info/logo.png",
    ),
    Asset(
        symbol="USDC",
        name="USD Coin",
        decimals=6,
        kind=AssetKind.FUNGIBLE,
        addresses={
            SEPOLIA: "0x1c7D4B196Cb0C7B01d743Fbc6116a902379C7238",
            MAINNET: "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48",
        },
    ),
    Asset(
        symbol="AZR",
        name="Azure Wraiths",
        decimals=0,
        kind=AssetKind.NON_FUNGIBLE,
        addresses={
            SEPOLIA: "0x5FbDB2315678afecb367f032d93F642f64180aa3",
            MAINNET: "0xe7f1725E7734CE288F8367e1Bb143E90bb3F0512",
        },
        logo_url="https://api.dicebear.com/7.x/identicon/svg?seed=Azure",
    ),
)


class AssetCatalog:
    """Validated, immutable-once-registered set of assets."""

    def __init__(
        self,
        registry: NetworkRegistry,
        assets: Iterable[Asset] = SUPPORTED_ASSETS,
        *,
        rpc: RpcFallbackClient | None = None,
    ) -> None:
        self._registry = registry
        self._rpc = rpc
        self._lock = threading.Lock()
        self._assets: dict[str, Asset] = {}
        for asset in assets:
            self.register(asset)

    def register(self, asset: Asset) -> Asset:
        """Add an asset after checking every address entry is well formed."""

        if not asset.symbol:
            raise ValidationError("Asset symbol is required", field="symbol")
        if asset.decimals < 0:
            raise ValidationError("Asset decimals must be >= 0", field="decimals", value=asset.decimals)
        if not asset.addresses:
            raise ConfigurationError(f"Asset {asset.symbol} declares no network addresses")

        for network_id, address in asset.addresses.items():
            if not isinstance(network_id, NetworkId):
                raise ConfigurationError(
                    f"Asset {asset.symbol} uses an untyped network key",
                    details={"key": network_id},
                )
            try:
                self._registry.get(network_id)
            except NetworkNotFound as exc:
                raise ConfigurationError(
                    f"Asset {asset.symbol} references unknown network {network_id}"
                ) from exc
            if asset.is_native:
                if address != NATIVE_ADDRESS:
                    raise ConfigurationError(
                        f"Native asset {asset.symbol} must use the native marker on {network_id}"
                    )
            elif not Web3.is_address(address):
                raise ConfigurationError(
                    f"Asset {asset.symbol} has an invalid address on {network_id}",
                    details={"address": address},
                )

        key = asset.symbol.upper()
        with self._lock:
            if key in self._assets:
                raise ConfigurationError(f"Asset {asset.symbol} is already registered")
            self._assets[key] = asset
        return asset

    def list(self) -> tuple[Asset, ...]:
        with self._lock:
            return tuple(self._assets.values())

    def get(self, symbol: str) -> Asset:
        with self._lock:
            asset = self._assets.get(symbol.upper())
        if asset is None:
            raise ValidationError(f"Unknown asset: {symbol}", field="asset", value=symbol)
        return asset

    def resolve_address(self, asset: Asset, network: Network) -> str:
        """Return the asset's contract address on ``network``.

        Custom hubs inherit the addresses of the network they fork.
        """

        address = asset.address_on(network.id)
        if address is None and network.fork_of is not None:
            address = asset.address_on(network.fork_of)
        if address is None:
            raise ConfigurationError(
                f"{asset.symbol} has no contract address on {network.name}",
                details={"asset": asset.symbol, "network": network.id.value},
            )
        if address == NATIVE_ADDRESS:
            return address
        return Web3.to_checksum_address(address)

    def import_token(self, network: Network, address: str) -> Asset:
        """Read symbol/name/decimals of an ERC-20 on ``network`` and register it."""

        if self._rpc is None:
            raise ConfigurationError("Token import requires an RPC client")
        if not Web3.is_address(address):
            raise ValidationError("Invalid token address", field="address", value=address)

        checksum = Web3.to_checksum_address(address)
        try:
            symbol = self._read_string(network, checksum, Selector.SYMBOL)
            name = self._read_string(network, checksum, Selector.NAME)
            (decimals,) = abi_decode(
                ["uint8"], self._read(network, checksum, Selector.DECIMALS)
            )
        except EndpointsExhausted:
            raise
        except Exception as exc:
            raise ValidationError(
                "Contract does not look like an ERC-20 token",
                field="address",
                value=address,
                details={"error": str(exc)},
            ) from exc

        asset = Asset(
            symbol=symbol,
            name=name,
            decimals=int(decimals),
            kind=AssetKind.FUNGIBLE,
            addresses={network.id: checksum},
        )
        logger.info("Imported token %s (%s) on %s", symbol, checksum, network.id)
        return self.register(asset)

    def _read(self, network: Network, address: str, selector: Selector) -> bytes:
        assert self._rpc is not None
        result = self._rpc.eth_call(network.rpc_urls, address, function_selector(selector.value))
        return Web3.to_bytes(hexstr=result)

    def _read_string(self, network: Network, address: str, selector: Selector) -> str:
        raw = self._read(network, address, selector)
        try:
            (value,) = abi_decode(["string"], raw)
            return str(value)
        except Exception:
            # Some legacy tokens return bytes32 instead of string.
            (value,) = abi_decode(["bytes32"], raw)
            return value.rstrip(b"\x00").decode("utf-8", errors="ignore")


def address_map(entries: Mapping[str, str]) -> dict[NetworkId, str]:
    """Convert a loosely keyed address mapping into the typed form assets expect."""
    return {NetworkId.parse(key): value for key, value in entries.items()}

"""Protocol contract addresses and built-in network definitions."""

from enum import Enum

from .types import Network, NetworkId, NetworkKind

SEPOLIA = NetworkId("sepolia")
MAINNET = NetworkId("mainnet")

# Circle CCTP TokenMessenger / MessageTransmitter
# https://developers.circle.com/stablecoins/evm-smart-contracts
CCTP_CONTRACTS = {
    SEPOLIA: {
        "token_messenger": "0x9f3B8679c73C2F338593C1F8Ec0809151d204bd0",
        "message_transmitter": "0x7865fAfC2db2093669d92c0F33AeEF291086BEFD",
    },
    MAINNET: {
        "token_messenger": "0xBd3fa81B58Ba92a8b13A8FE9cC680bF6d09181DB",
        "message_transmitter": "0x0a992d191DEeC32aFe36203Ad87D7d289a738F81",
    },
}

# LayerZero V2 endpoint ids and endpoint contracts
LZ_EIDS = {
    SEPOLIA: 40161,
    MAINNET: 30101,
    NetworkId("avalanche"): 30106,
    NetworkId("base"): 30184,
}

LZ_ENDPOINTS = {
    SEPOLIA: "0x6ed98e84ee67484916cd306e6641957b762886f6",
    MAINNET: "0x1a44076050125825900e736c501f859c50fE728c",
}

# Defaults offered when deploying a hub forked from mainnet
HUB_DEFAULTS = {
    "cctp_token_messenger": CCTP_CONTRACTS[MAINNET]["token_messenger"],
    "cctp_message_transmitter": CCTP_CONTRACTS[MAINNET]["message_transmitter"],
    "cctp_domain": 0,
    "lz_endpoint": LZ_ENDPOINTS[MAINNET],
    "lz_eid": LZ_EIDS[MAINNET],
}

CANONICAL_STABLECOIN = "USDC"


class Selector(str, Enum):
    """Function signatures used to build calldata."""

    APPROVE = "approve(address,uint256)"
    BALANCE_OF = "balanceOf(address)"
    SYMBOL = "symbol()"
    NAME = "name()"
    DECIMALS = "decimals()"
    DEPOSIT_FOR_BURN = "depositForBurn(uint256,uint32,bytes32,address)"
    RECEIVE_MESSAGE = "receiveMessage(bytes,bytes)"
    LZ_SEND = "send((uint32,bytes32,bytes,bytes,bool),address)"


BUILTIN_NETWORKS: tuple[Network, ...] = (
    Network(
        id=SEPOLIA,
        name="Sepolia Testnet",
        kind=NetworkKind.TESTNET,
        chain_id=11155111,
        chain_id_hex="0xaa36a7",
        rpc_urls=("https://rpc.sepolia.org", "https://ethereum-sepolia-rpc.publicnode.com"),
        currency="ETH",
        explorer_url="https://sepolia.etherscan.io",
        cctp_token_messenger=CCTP_CONTRACTS[SEPOLIA]["token_messenger"],
        cctp_message_transmitter=CCTP_CONTRACTS[SEPOLIA]["message_transmitter"],
        cctp_domain=0,
        lz_endpoint=LZ_ENDPOINTS[SEPOLIA],
        lz_eid=LZ_EIDS[SEPOLIA],
    ),
    Network(
        id=MAINNET,
        name="Ethereum Mainnet",
        kind=NetworkKind.MAINNET,
        chain_id=1,
        chain_id_hex="0x1",
        rpc_urls=("https://eth.llamarpc.com", "https://ethereum-rpc.publicnode.com"),
        currency="ETH",
        explorer_url="https://etherscan.io",
        cctp_token_messenger=CCTP_CONTRACTS[MAINNET]["token_messenger"],
        cctp_message_transmitter=CCTP_CONTRACTS[MAINNET]["message_transmitter"],
        cctp_domain=0,
        lz_endpoint=LZ_ENDPOINTS[MAINNET],
        lz_eid=LZ_EIDS[MAINNET],
    ),
)

"""Utility functions for amounts, chain identifiers and calldata."""

from collections.abc import Mapping, Sequence
from decimal import ROUND_DOWN, Decimal, InvalidOperation
from typing import Any

from eth_abi import encode as abi_encode
from hexbytes import HexBytes
from web3 import Web3

from .exceptions import ValidationError

UINT256_MAX = 2**256 - 1


def to_base_units(amount: str | float | int | Decimal, decimals: int) -> tuple[int, bool]:
    """Scale a human amount to integer base units.

    Returns the scaled integer and whether precision beyond ``decimals`` was
    truncated.
    """
    if isinstance(amount, Decimal):
        quantity = amount
    else:
        try:
            quantity = Decimal(str(amount).strip())
        except (ValueError, InvalidOperation) as exc:
            raise ValidationError(
                "Invalid amount", field="amount", value=amount, details={"error": str(exc)}
            ) from exc

    if not quantity.is_finite():
        raise ValidationError("Invalid amount", field="amount", value=amount)
    if quantity <= 0:
        raise ValidationError("Transfer amount must be positive", field="amount", value=amount)

    scaled = quantity * (Decimal(10) ** decimals)
    integral = scaled.to_integral_value(rounding=ROUND_DOWN)
    if integral <= 0:
        raise ValidationError(
            "Transfer amount is below the asset precision", field="amount", value=amount
        )
    if integral > UINT256_MAX:
        raise ValidationError("Amount exceeds uint256 maximum", field="amount", value=amount)

    return int(integral), integral != scaled


def from_base_units(units: int, decimals: int) -> Decimal:
    """Convert integer base units back to a Decimal amount."""
    return Decimal(units) / (Decimal(10) ** decimals)


def parse_token_id(token_id: str | int) -> int:
    """Parse a non-fungible token id."""
    try:
        if isinstance(token_id, str):
            text = token_id.strip().lower()
            value = int(text, 16) if text.startswith("0x") else int(text)
        else:
            value = int(token_id)
    except ValueError as exc:
        raise ValidationError("Invalid token id", field="token_id", value=token_id) from exc

    if value < 0 or value > UINT256_MAX:
        raise ValidationError("Token id out of range", field="token_id", value=token_id)
    return value


def chain_id_to_hex(chain_id: int) -> str:
    """Return the canonical hexadecimal form used by wallets (no leading zeros)."""
    if chain_id <= 0:
        raise ValidationError("Chain id must be positive", field="chain_id", value=chain_id)
    return hex(chain_id)


def parse_chain_id(value: str | int) -> int:
    """Parse a chain id given either in decimal or 0x-prefixed hex."""
    if isinstance(value, int):
        return value
    text = str(value).strip().lower()
    try:
        return int(text, 16) if text.startswith("0x") else int(text)
    except ValueError as exc:
        raise ValidationError("Invalid chain id", field="chain_id", value=value) from exc


def chain_ids_agree(chain_id: int, chain_id_hex: str) -> bool:
    try:
        return parse_chain_id(chain_id_hex) == chain_id and chain_id_hex.lower() == hex(chain_id)
    except ValidationError:
        return False


def address_to_bytes32(address: str) -> bytes:
    """Left-pad a 20 byte address into a bytes32 word."""
    return bytes(12) + Web3.to_bytes(hexstr=Web3.to_checksum_address(address))


def function_selector(signature: str) -> bytes:
    """Return the 4-byte selector for a canonical function signature."""
    return bytes(Web3.keccak(text=signature)[:4])


def encode_call(signature: str, arg_types: Sequence[str], args: Sequence[Any]) -> bytes:
    """Encode calldata: selector followed by ABI-encoded arguments."""
    return function_selector(signature) + abi_encode(list(arg_types), list(args))


def hex_to_int(value: Any) -> int:
    """Decode a JSON-RPC quantity (or empty eth_call result) to int."""
    if value is None:
        raise ValidationError("Missing quantity", field="quantity", value=value)
    if isinstance(value, int):
        return value
    text = str(value)
    if text in ("0x", ""):
        return 0
    return int(text, 16)


def serialise_receipt(receipt: Any) -> Any:
    """Serialise receipt objects into JSON-friendly structures."""
    if receipt is None:
        return None
    if isinstance(receipt, Mapping):
        return {key: serialise_receipt(value) for key, value in receipt.items()}
    if isinstance(receipt, Sequence) and not isinstance(
        receipt, str | bytes | bytearray | HexBytes
    ):
        return [serialise_receipt(item) for item in receipt]
    if isinstance(receipt, bytes | bytearray | HexBytes):
        return HexBytes(receipt).to_0x_hex()
    return receipt

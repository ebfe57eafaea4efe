"""Shared type definitions for exchange models.

Addresses are 20-byte identifiers rendered as lowercase 0x-prefixed hex.
Lowercase hex compares in the same order as the underlying bytes, which is
what canonical token ordering relies on.
"""

from typing import Annotated, Any

from pydantic import AfterValidator, BeforeValidator, Field, PlainSerializer

# Maximum uint256 value
UINT256_MAX = 2**256 - 1

ZERO_ADDRESS = "0x" + "00" * 20


def validate_uint256(value: Any) -> int:
    """Validate that a value is a non-negative integer that fits in uint256.

    Accepts ints and decimal strings (JSON clients often send big numbers as
    strings).

    Raises:
        ValueError: If value is not a valid non-negative integer within uint256 range
    """
    if isinstance(value, bool):
        raise ValueError("Uint256 must be an integer, got bool")

    if isinstance(value, str):
        try:
            value = int(value)
        except ValueError as err:
            raise ValueError(f"Uint256 must be a decimal integer string: '{value}'") from err

    if not isinstance(value, int):
        raise ValueError(f"Uint256 must be string or int, got {type(value).__name__}")

    if value < 0:
        raise ValueError(f"Uint256 cannot be negative: {value}")
    if value > UINT256_MAX:
        raise ValueError(f"Uint256 overflow: {value} > 2^256-1")

    return value


def normalize_address(address: str, *, validate: bool = False) -> str:
    """Normalize an address to lowercase with a 0x prefix.

    Args:
        address: An address (with or without 0x prefix)
        validate: If True, raises ValueError for malformed addresses.

    Raises:
        ValueError: If validate=True and address is not a valid address
    """
    addr = address.lower()
    if not addr.startswith("0x"):
        addr = "0x" + addr

    if validate and not is_valid_address(addr):
        raise ValueError(f"Invalid address: {address}")

    return addr


def is_valid_address(address: str) -> bool:
    """Check if a string is a 0x-prefixed 20-byte hex address."""
    if not isinstance(address, str):
        return False
    if not address.startswith("0x"):
        return False
    if len(address) != 42:
        return False
    try:
        int(address, 16)
        return True
    except ValueError:
        return False


def address_bytes(address: str) -> bytes:
    """Raw 20 bytes of an address."""
    return bytes.fromhex(normalize_address(address, validate=True)[2:])


# Address accepted from clients in any case, stored lowercase
Address = Annotated[
    str,
    Field(pattern=r"^0x[a-fA-F0-9]{40}$"),
    AfterValidator(normalize_address),
]

# 256-bit unsigned integer, from int or decimal string; serialized to JSON
# as a decimal string
Uint256 = Annotated[
    int,
    BeforeValidator(validate_uint256),
    PlainSerializer(str, return_type=str, when_used="json"),
    Field(description="256-bit unsigned integer"),
]

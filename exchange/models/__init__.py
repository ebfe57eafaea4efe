"""Shared models: address/amount types and chain events."""

from exchange.models.events import (
    Approval,
    Burn,
    Deposit,
    Event,
    Mint,
    PoolCreated,
    Swap,
    Sync,
    Transfer,
    Withdrawal,
)
from exchange.models.types import (
    UINT256_MAX,
    ZERO_ADDRESS,
    Address,
    Uint256,
    address_bytes,
    is_valid_address,
    normalize_address,
)

__all__ = [
    "Address",
    "Uint256",
    "UINT256_MAX",
    "ZERO_ADDRESS",
    "address_bytes",
    "is_valid_address",
    "normalize_address",
    "Event",
    "Transfer",
    "Approval",
    "Deposit",
    "Withdrawal",
    "Sync",
    "Mint",
    "Burn",
    "Swap",
    "PoolCreated",
]

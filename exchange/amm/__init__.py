"""Pools, the pool registry and their pricing policies."""

from exchange.amm.factory import Factory
from exchange.amm.library import PoolSnapshot, pool_for, sort_tokens
from exchange.amm.pool import LockState, Pool
from exchange.amm.pricing import (
    ConstantProduct,
    FixedInitialRatio,
    PricingKind,
    PricingPolicy,
)

__all__ = [
    "Factory",
    "Pool",
    "LockState",
    "PoolSnapshot",
    "pool_for",
    "sort_tokens",
    "ConstantProduct",
    "FixedInitialRatio",
    "PricingKind",
    "PricingPolicy",
]

"""Off-pool helpers the router and API use to address and quote pools.

Pool addresses are computed, never looked up: a pool for a pair lives at the
CREATE2 address of (factory, token0, token1) whether or not it exists yet.
Quotes read reserves through a PoolSnapshot and price each hop with the
pool's own policy.
"""

from __future__ import annotations

from dataclasses import dataclass

from exchange.amm import pricing
from exchange.amm.pool import Pool
from exchange.amm.pricing import PricingPolicy
from exchange.chain.addresses import create2_address, pair_salt
from exchange.chain.chain import Chain
from exchange.constants import POOL_INIT_CODE_HASH
from exchange.errors import (
    IdenticalAssets,
    InsufficientInputAmount,
    InsufficientLiquidity,
    InvalidPath,
    PoolNotFound,
    ZeroAddress,
)
from exchange.models.types import ZERO_ADDRESS, normalize_address
from exchange.safe_int import S


def sort_tokens(token_a: str, token_b: str) -> tuple[str, str]:
    """Return the pair in canonical (lower address first) order.

    Raises:
        IdenticalAssets: If both addresses are the same
        ZeroAddress: If either address is the zero address
        ValueError: If either address is malformed
    """
    a = normalize_address(token_a, validate=True)
    b = normalize_address(token_b, validate=True)
    if a == b:
        raise IdenticalAssets(f"identical assets: {a}")
    token0, token1 = (a, b) if a < b else (b, a)
    if token0 == ZERO_ADDRESS:
        raise ZeroAddress("zero address cannot be a pool asset")
    return token0, token1


def pool_for(factory: str, token_a: str, token_b: str) -> str:
    """Deterministic pool address for a pair, independent of argument order."""
    token0, token1 = sort_tokens(token_a, token_b)
    return create2_address(factory, pair_salt(token0, token1), POOL_INIT_CODE_HASH)


@dataclass
class PoolSnapshot:
    """Point-in-time view of a pool's pricing state."""

    address: str
    token0: str
    token1: str
    reserve0: int
    reserve1: int
    initial_reserve0: int
    initial_reserve1: int
    total_supply: int
    block_timestamp_last: int
    policy: PricingPolicy

    @classmethod
    def of(cls, pool: Pool) -> PoolSnapshot:
        return cls(
            address=pool.address,
            token0=pool.token0,
            token1=pool.token1,
            reserve0=pool.reserve0,
            reserve1=pool.reserve1,
            initial_reserve0=pool.initial_reserve0,
            initial_reserve1=pool.initial_reserve1,
            total_supply=pool.total_supply,
            block_timestamp_last=pool.block_timestamp_last,
            policy=pool.policy,
        )

    def _ordered(self, token_in: str, first: int, second: int) -> tuple[int, int]:
        token_in_norm = normalize_address(token_in)
        if token_in_norm == self.token0:
            return first, second
        elif token_in_norm == self.token1:
            return second, first
        else:
            raise ValueError(f"Token {token_in} not in pool")

    def get_reserves(self, token_in: str) -> tuple[int, int]:
        """Get reserves ordered as (reserve_in, reserve_out)."""
        return self._ordered(token_in, self.reserve0, self.reserve1)

    def get_initial_reserves(self, token_in: str) -> tuple[int, int]:
        """Get first-deposit amounts ordered as (initial_in, initial_out)."""
        return self._ordered(token_in, self.initial_reserve0, self.initial_reserve1)

    def get_token_out(self, token_in: str) -> str:
        """Get the output token for a given input token."""
        token_in_norm = normalize_address(token_in)
        if token_in_norm == self.token0:
            return self.token1
        elif token_in_norm == self.token1:
            return self.token0
        else:
            raise ValueError(f"Token {token_in} not in pool")

    def get_amount_out(self, token_in: str, amount_in: int) -> int:
        reserve_in, reserve_out = self.get_reserves(token_in)
        initial_in, initial_out = self.get_initial_reserves(token_in)
        return pricing.get_amount_out(
            self.policy, amount_in, reserve_in, reserve_out, initial_in, initial_out
        )

    def get_amount_in(self, token_in: str, amount_out: int) -> int:
        reserve_in, reserve_out = self.get_reserves(token_in)
        initial_in, initial_out = self.get_initial_reserves(token_in)
        return pricing.get_amount_in(
            self.policy, amount_out, reserve_in, reserve_out, initial_in, initial_out
        )


def get_pool(chain: Chain, factory: str, token_a: str, token_b: str) -> Pool:
    """Resolve the deployed pool for a pair.

    Raises:
        PoolNotFound: If no pool has been created for the pair
    """
    address = pool_for(factory, token_a, token_b)
    try:
        return chain.at(address, Pool)
    except LookupError as err:
        raise PoolNotFound(f"no pool for {token_a}/{token_b}") from err


def get_reserves(chain: Chain, factory: str, token_a: str, token_b: str) -> tuple[int, int]:
    """Reserves ordered as (reserve_a, reserve_b)."""
    return PoolSnapshot.of(get_pool(chain, factory, token_a, token_b)).get_reserves(token_a)


def quote(amount_a: int, reserve_a: int, reserve_b: int) -> int:
    """Amount of B worth ``amount_a`` at the current reserve ratio.

    Raises:
        InsufficientInputAmount: If amount_a is zero
        InsufficientLiquidity: If either reserve is empty
    """
    if amount_a <= 0:
        raise InsufficientInputAmount(f"amount must be positive, got {amount_a}")
    if reserve_a <= 0 or reserve_b <= 0:
        raise InsufficientLiquidity(f"empty reserves: {reserve_a}, {reserve_b}")
    return (S(amount_a) * reserve_b // reserve_a).value


def check_path(path: list[str]) -> list[str]:
    """Normalized path.

    Raises:
        InvalidPath: If the path has fewer than two tokens
    """
    if len(path) < 2:
        raise InvalidPath(f"path needs at least two tokens, got {len(path)}")
    return [normalize_address(token, validate=True) for token in path]


def get_amounts_out(chain: Chain, factory: str, amount_in: int, path: list[str]) -> list[int]:
    """Chained exact-input quotes; ``amounts[0] == amount_in``.

    Raises:
        InvalidPath: If the path has fewer than two tokens
        PoolNotFound: If a hop has no pool
    """
    path = check_path(path)
    amounts = [amount_in]
    for token_in, token_out in zip(path, path[1:]):
        snapshot = PoolSnapshot.of(get_pool(chain, factory, token_in, token_out))
        amounts.append(snapshot.get_amount_out(token_in, amounts[-1]))
    return amounts


def get_amounts_in(chain: Chain, factory: str, amount_out: int, path: list[str]) -> list[int]:
    """Chained exact-output quotes, computed backwards; ``amounts[-1] == amount_out``.

    Raises:
        InvalidPath: If the path has fewer than two tokens
        PoolNotFound: If a hop has no pool
    """
    path = check_path(path)
    amounts = [amount_out]
    for token_in, token_out in reversed(list(zip(path, path[1:]))):
        snapshot = PoolSnapshot.of(get_pool(chain, factory, token_in, token_out))
        amounts.insert(0, snapshot.get_amount_in(token_in, amounts[0]))
    return amounts


__all__ = [
    "sort_tokens",
    "pool_for",
    "PoolSnapshot",
    "get_pool",
    "get_reserves",
    "quote",
    "check_path",
    "get_amounts_out",
    "get_amounts_in",
]

"""Liquidity pool for one token pair.

The pool never pulls tokens. Callers transfer assets in first, then call
``mint`` or ``swap``; the pool measures what arrived as the difference
between its ledger balances and its last synced reserves. ``burn`` works the
same way on the pool's own share balance.

Every entry point holds the pool lock for its whole duration, so a swap
callback cannot re-enter the pool it came from.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from enum import Enum
from typing import TYPE_CHECKING

import structlog

from exchange.amm.pricing import (
    PricingPolicy,
    check_swap,
    collects_protocol_fee,
    locked_liquidity,
)
from exchange.chain.chain import Chain, external
from exchange.constants import (
    PROTOCOL_FEE_MULTIPLIER,
    RESERVE_BITS,
    SHARE_TOKEN_DECIMALS,
    SHARE_TOKEN_NAME,
    SHARE_TOKEN_SYMBOL,
    TIMESTAMP_MODULUS,
)
from exchange.errors import (
    InsufficientLiquidity,
    InsufficientLiquidityBurned,
    InsufficientLiquidityMinted,
    InsufficientOutputAmount,
    InvalidRecipient,
    Reentrant,
    ReserveOverflow,
    TransferFailed,
)
from exchange.ledger.base import SwapCallee
from exchange.ledger.erc20 import FungibleToken, PermitToken
from exchange.models.events import Burn, Mint, Swap, Sync
from exchange.models.types import ZERO_ADDRESS, normalize_address
from exchange.safe_int import S, Uint112Overflow

if TYPE_CHECKING:
    from exchange.amm.factory import Factory

logger = structlog.get_logger()


class LockState(Enum):
    UNLOCKED = "unlocked"
    LOCKED = "locked"


class Pool(PermitToken):
    """Two-asset pool whose shares are themselves a permit-enabled token.

    Attributes:
        factory: Address of the registry that created the pool
        token0: Lower asset address
        token1: Higher asset address
        policy: Pricing policy, fixed at creation
        reserve0: Last synced balance of token0
        reserve1: Last synced balance of token1
        initial_reserve0: token0 amount of the first deposit
        initial_reserve1: token1 amount of the first deposit
        block_timestamp_last: Timestamp (mod 2^32) of the last sync
        price0_cumulative_last: Sum of UQ112x112 token0 price * seconds
        price1_cumulative_last: Sum of UQ112x112 token1 price * seconds
        k_last: reserve0 * reserve1 after the last liquidity event while the
            protocol fee is on
    """

    def __init__(
        self,
        chain: Chain,
        address: str,
        factory: str,
        token0: str,
        token1: str,
        policy: PricingPolicy,
        name: str = SHARE_TOKEN_NAME,
        symbol: str = SHARE_TOKEN_SYMBOL,
    ) -> None:
        super().__init__(chain, address, name, symbol, SHARE_TOKEN_DECIMALS)
        self.factory = normalize_address(factory)
        self.token0 = normalize_address(token0)
        self.token1 = normalize_address(token1)
        self.policy = policy

        self.reserve0 = 0
        self.reserve1 = 0
        self.block_timestamp_last = 0
        self.initial_reserve0 = 0
        self.initial_reserve1 = 0

        self.price0_cumulative_last = 0
        self.price1_cumulative_last = 0
        self.k_last = 0

        self.lock = LockState.UNLOCKED

    # --- Views ---

    def get_reserves(self) -> tuple[int, int, int]:
        return self.reserve0, self.reserve1, self.block_timestamp_last

    def get_initial_reserves(self) -> tuple[int, int]:
        return self.initial_reserve0, self.initial_reserve1

    # --- Entry points ---

    @external
    def mint(self, sender: str, to: str) -> int:
        """Issue shares for the assets transferred in since the last sync.

        Returns:
            Shares minted to ``to``

        Raises:
            InsufficientLiquidityMinted: If the deposit is worth zero shares
        """
        with self._locked():
            reserve0, reserve1 = self.reserve0, self.reserve1
            balance0 = self._token(self.token0).balance_of(self.address)
            balance1 = self._token(self.token1).balance_of(self.address)
            amount0 = (S(balance0) - reserve0).value
            amount1 = (S(balance1) - reserve1).value

            fee_on = self._mint_fee(reserve0, reserve1)
            total_supply = self.total_supply
            if total_supply == 0:
                root = (S(amount0) * amount1).sqrt()
                locked = locked_liquidity(self.policy)
                if root <= locked:
                    raise InsufficientLiquidityMinted(
                        f"first deposit worth {root} shares, {locked} are locked"
                    )
                liquidity = (root - locked).value
                if locked:
                    self._mint(ZERO_ADDRESS, locked)
                if self.initial_reserve0 == 0 and self.initial_reserve1 == 0:
                    self.initial_reserve0 = amount0
                    self.initial_reserve1 = amount1
            else:
                liquidity = (
                    (S(amount0) * total_supply // reserve0)
                    .min(S(amount1) * total_supply // reserve1)
                    .value
                )
            if liquidity <= 0:
                raise InsufficientLiquidityMinted(f"deposit ({amount0}, {amount1}) mints no shares")

            self._mint(to, liquidity)
            self._update(balance0, balance1, reserve0, reserve1)
            if fee_on:
                self.k_last = self.reserve0 * self.reserve1
            self.emit(Mint(self.address, normalize_address(sender), amount0, amount1))

        logger.debug(
            "liquidity_minted",
            pool=self.address,
            to=to,
            liquidity=liquidity,
            amount0=amount0,
            amount1=amount1,
        )
        return liquidity

    @external
    def burn(self, sender: str, to: str) -> tuple[int, int]:
        """Redeem the shares held by the pool itself for assets.

        Returns:
            (amount0, amount1) sent to ``to``

        Raises:
            InsufficientLiquidityBurned: If either returned amount is zero
        """
        to = normalize_address(to)
        with self._locked():
            reserve0, reserve1 = self.reserve0, self.reserve1
            token0, token1 = self._token(self.token0), self._token(self.token1)
            balance0 = token0.balance_of(self.address)
            balance1 = token1.balance_of(self.address)
            liquidity = self.balance_of(self.address)

            fee_on = self._mint_fee(reserve0, reserve1)
            total_supply = self.total_supply
            if total_supply == 0:
                raise InsufficientLiquidityBurned("pool has no shares outstanding")
            amount0 = (S(liquidity) * balance0 // total_supply).value
            amount1 = (S(liquidity) * balance1 // total_supply).value
            if amount0 <= 0 or amount1 <= 0:
                raise InsufficientLiquidityBurned(
                    f"burning {liquidity} shares returns ({amount0}, {amount1})"
                )

            self._burn(self.address, liquidity)
            self._safe_transfer(token0, to, amount0)
            self._safe_transfer(token1, to, amount1)
            balance0 = token0.balance_of(self.address)
            balance1 = token1.balance_of(self.address)

            self._update(balance0, balance1, reserve0, reserve1)
            if fee_on:
                self.k_last = self.reserve0 * self.reserve1
            self.emit(Burn(self.address, normalize_address(sender), amount0, amount1, to))

        logger.debug(
            "liquidity_burned",
            pool=self.address,
            to=to,
            liquidity=liquidity,
            amount0=amount0,
            amount1=amount1,
        )
        return amount0, amount1

    @external
    def swap(
        self,
        sender: str,
        amount0_out: int,
        amount1_out: int,
        to: str,
        data: bytes = b"",
    ) -> None:
        """Send the requested outputs, then check what was paid for them.

        Outputs are transferred optimistically. If ``data`` is non-empty the
        recipient's ``on_pool_swap`` runs before inputs are measured, so it can
        pay for the swap (flash swap).

        Raises:
            InsufficientOutputAmount: If no output is requested
            InsufficientLiquidity: If an output would drain its reserve
            InvalidRecipient: If ``to`` is one of the pool's tokens, or a
                callback is requested from a non-callee
            InsufficientInputAmount: Constant product, nothing was paid in
            InvariantViolation: Constant product, fee-adjusted k decreased
            InvalidInputOutput: Fixed ratio, amounts off the initial ratio
        """
        to = normalize_address(to)
        if amount0_out < 0 or amount1_out < 0:
            raise InsufficientOutputAmount(f"negative output ({amount0_out}, {amount1_out})")
        if amount0_out == 0 and amount1_out == 0:
            raise InsufficientOutputAmount("no output requested")

        with self._locked():
            reserve0, reserve1 = self.reserve0, self.reserve1
            if amount0_out >= reserve0 or amount1_out >= reserve1:
                raise InsufficientLiquidity(
                    f"outputs ({amount0_out}, {amount1_out}) vs reserves ({reserve0}, {reserve1})"
                )
            if to in (self.token0, self.token1):
                raise InvalidRecipient(f"cannot swap to token contract {to}")

            token0, token1 = self._token(self.token0), self._token(self.token1)
            if amount0_out > 0:
                self._safe_transfer(token0, to, amount0_out)
            if amount1_out > 0:
                self._safe_transfer(token1, to, amount1_out)
            if data:
                callee = self.chain.get(to)
                if not isinstance(callee, SwapCallee):
                    raise InvalidRecipient(f"{to} cannot receive a swap callback")
                callee.on_pool_swap(normalize_address(sender), amount0_out, amount1_out, data)

            balance0 = token0.balance_of(self.address)
            balance1 = token1.balance_of(self.address)
            amount0_in = max(balance0 - (reserve0 - amount0_out), 0)
            amount1_in = max(balance1 - (reserve1 - amount1_out), 0)

            check_swap(
                self.policy,
                balance0=balance0,
                balance1=balance1,
                reserve0=reserve0,
                reserve1=reserve1,
                amount0_in=amount0_in,
                amount1_in=amount1_in,
                amount0_out=amount0_out,
                amount1_out=amount1_out,
                initial0=self.initial_reserve0,
                initial1=self.initial_reserve1,
            )

            self._update(balance0, balance1, reserve0, reserve1)
            self.emit(
                Swap(
                    self.address,
                    normalize_address(sender),
                    amount0_in,
                    amount1_in,
                    amount0_out,
                    amount1_out,
                    to,
                )
            )

        logger.debug(
            "swap_executed",
            pool=self.address,
            amount0_in=amount0_in,
            amount1_in=amount1_in,
            amount0_out=amount0_out,
            amount1_out=amount1_out,
            to=to,
        )

    @external
    def skim(self, sender: str, to: str) -> None:
        """Send balances in excess of the reserves to ``to``."""
        with self._locked():
            token0, token1 = self._token(self.token0), self._token(self.token1)
            excess0 = (S(token0.balance_of(self.address)) - self.reserve0).value
            excess1 = (S(token1.balance_of(self.address)) - self.reserve1).value
            if excess0:
                self._safe_transfer(token0, to, excess0)
            if excess1:
                self._safe_transfer(token1, to, excess1)

    @external
    def sync(self, sender: str) -> None:
        """Force reserves to match balances."""
        with self._locked():
            self._update(
                self._token(self.token0).balance_of(self.address),
                self._token(self.token1).balance_of(self.address),
                self.reserve0,
                self.reserve1,
            )

    # --- Internals ---

    @contextmanager
    def _locked(self) -> Iterator[None]:
        if self.lock is LockState.LOCKED:
            raise Reentrant(f"{self.address} is locked")
        self.lock = LockState.LOCKED
        try:
            yield
        finally:
            self.lock = LockState.UNLOCKED

    def _token(self, address: str) -> FungibleToken:
        return self.chain.at(address, FungibleToken)

    def _safe_transfer(self, token: FungibleToken, to: str, amount: int) -> None:
        if not token.transfer(self.address, to, amount):
            raise TransferFailed(f"{token.symbol} transfer of {amount} to {to} failed")

    def _registry(self) -> Factory:
        from exchange.amm.factory import Factory

        return self.chain.at(self.factory, Factory)

    def _update(self, balance0: int, balance1: int, reserve0: int, reserve1: int) -> None:
        """Write reserves, advancing the price accumulators first."""
        try:
            new_reserve0 = S(balance0).to_uint112()
            new_reserve1 = S(balance1).to_uint112()
        except Uint112Overflow as err:
            raise ReserveOverflow(f"balances ({balance0}, {balance1}) exceed uint112") from err

        block_timestamp = self.chain.timestamp % TIMESTAMP_MODULUS
        time_elapsed = (block_timestamp - self.block_timestamp_last) % TIMESTAMP_MODULUS
        if time_elapsed > 0 and reserve0 != 0 and reserve1 != 0:
            # UQ112x112 price of each token in terms of the other
            price0 = (S(reserve1) << RESERVE_BITS) // reserve0
            price1 = (S(reserve0) << RESERVE_BITS) // reserve1
            self.price0_cumulative_last += (price0 * time_elapsed).value
            self.price1_cumulative_last += (price1 * time_elapsed).value

        self.reserve0 = new_reserve0
        self.reserve1 = new_reserve1
        self.block_timestamp_last = block_timestamp
        self.emit(Sync(self.address, new_reserve0, new_reserve1))

    def _mint_fee(self, reserve0: int, reserve1: int) -> bool:
        """Mint the protocol's share of fee growth since the last liquidity event.

        Returns:
            True if the protocol fee is switched on for this pool
        """
        if not collects_protocol_fee(self.policy):
            return False
        fee_to = self._registry().fee_to
        fee_on = fee_to != ZERO_ADDRESS
        if fee_on:
            if self.k_last != 0:
                root_k = (S(reserve0) * reserve1).sqrt()
                root_k_last = S(self.k_last).sqrt()
                if root_k > root_k_last:
                    numerator = S(self.total_supply) * (root_k - root_k_last)
                    denominator = root_k * PROTOCOL_FEE_MULTIPLIER + root_k_last
                    liquidity = (numerator // denominator).value
                    if liquidity > 0:
                        self._mint(fee_to, liquidity)
                        logger.debug("protocol_fee_minted", pool=self.address, liquidity=liquidity)
        elif self.k_last != 0:
            self.k_last = 0
        return fee_on


__all__ = ["LockState", "Pool"]

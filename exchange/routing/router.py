"""User-facing router.

Wraps the pool primitives into safe, deadline-bounded operations: adding and
removing liquidity at the current ratio, and exact-input / exact-output swaps
along multi-hop paths, with native coin wrapped and unwrapped on the way in
or out. The router holds no balances between calls.

Every entry point takes the calling account as ``sender``. Native-coin entry
points also take ``value``, the native amount sent along with the call.
"""

from __future__ import annotations

import structlog

from exchange.amm import library
from exchange.amm.factory import Factory
from exchange.amm.library import PoolSnapshot, pool_for, sort_tokens
from exchange.amm.pool import Pool
from exchange.chain.chain import Chain, Contract, external
from exchange.errors import (
    ExcessiveInputAmount,
    Expired,
    InsufficientAAmount,
    InsufficientBAmount,
    InsufficientOutputAmount,
    InvalidPath,
    NativeTransferFailed,
    TransferFailed,
)
from exchange.ledger.erc20 import FungibleToken
from exchange.ledger.native import WrappedNative
from exchange.models.types import UINT256_MAX, normalize_address

logger = structlog.get_logger()


class Router(Contract):
    """Routes liquidity and swap requests to pools created by one factory.

    Attributes:
        factory: Address of the pool registry
        wrapped_native: Address of the wrapped native token
    """

    def __init__(self, chain: Chain, address: str, factory: str, wrapped_native: str) -> None:
        super().__init__(chain, address)
        self.factory = normalize_address(factory, validate=True)
        self.wrapped_native = normalize_address(wrapped_native, validate=True)

    def receive(self, sender: str, value: int) -> None:
        """Accept native coin only while unwrapping."""
        if normalize_address(sender) != self.wrapped_native:
            raise NativeTransferFailed(
                f"router only accepts native coin from {self.wrapped_native}"
            )

    # --- Liquidity ---

    @external
    def add_liquidity(
        self,
        sender: str,
        token_a: str,
        token_b: str,
        amount_a_desired: int,
        amount_b_desired: int,
        amount_a_min: int,
        amount_b_min: int,
        to: str,
        deadline: int,
    ) -> tuple[int, int, int]:
        """Deposit both tokens at the pool's current ratio, creating the pool if needed.

        Returns:
            (amount_a, amount_b, liquidity)

        Raises:
            Expired: If the deadline has passed
            InsufficientAAmount / InsufficientBAmount: If the ratio-adjusted
                amount of a token falls below its minimum
        """
        self._ensure(deadline)
        amount_a, amount_b = self._add_liquidity(
            token_a, token_b, amount_a_desired, amount_b_desired, amount_a_min, amount_b_min
        )
        pool = library.get_pool(self.chain, self.factory, token_a, token_b)
        self._safe_transfer_from(token_a, sender, pool.address, amount_a)
        self._safe_transfer_from(token_b, sender, pool.address, amount_b)
        liquidity = pool.mint(self.address, to)

        logger.info(
            "liquidity_added",
            pool=pool.address,
            amount_a=amount_a,
            amount_b=amount_b,
            liquidity=liquidity,
        )
        return amount_a, amount_b, liquidity

    @external
    def add_liquidity_native(
        self,
        sender: str,
        token: str,
        amount_token_desired: int,
        amount_token_min: int,
        amount_native_min: int,
        to: str,
        deadline: int,
        value: int,
    ) -> tuple[int, int, int]:
        """Deposit a token and native coin; unused native coin is refunded.

        Returns:
            (amount_token, amount_native, liquidity)
        """
        self.chain.attach_value(sender, self.address, value)
        self._ensure(deadline)
        amount_token, amount_native = self._add_liquidity(
            token,
            self.wrapped_native,
            amount_token_desired,
            value,
            amount_token_min,
            amount_native_min,
        )
        pool = library.get_pool(self.chain, self.factory, token, self.wrapped_native)
        self._safe_transfer_from(token, sender, pool.address, amount_token)
        weth = self._weth()
        weth.deposit(self.address, amount_native)
        self._safe_transfer(self.wrapped_native, pool.address, amount_native)
        liquidity = pool.mint(self.address, to)
        if value > amount_native:
            self.chain.transfer_native(self.address, sender, value - amount_native)

        logger.info(
            "liquidity_added",
            pool=pool.address,
            amount_token=amount_token,
            amount_native=amount_native,
            liquidity=liquidity,
        )
        return amount_token, amount_native, liquidity

    @external
    def remove_liquidity(
        self,
        sender: str,
        token_a: str,
        token_b: str,
        liquidity: int,
        amount_a_min: int,
        amount_b_min: int,
        to: str,
        deadline: int,
    ) -> tuple[int, int]:
        """Burn shares for both tokens.

        Requires the router to be approved for ``liquidity`` pool shares.

        Returns:
            (amount_a, amount_b)
        """
        self._ensure(deadline)
        return self._remove_liquidity(
            sender, token_a, token_b, liquidity, amount_a_min, amount_b_min, to
        )

    @external
    def remove_liquidity_native(
        self,
        sender: str,
        token: str,
        liquidity: int,
        amount_token_min: int,
        amount_native_min: int,
        to: str,
        deadline: int,
    ) -> tuple[int, int]:
        """Burn shares of a token/wrapped-native pool, receiving native coin.

        Returns:
            (amount_token, amount_native)
        """
        self._ensure(deadline)
        return self._remove_liquidity_native(
            sender, token, liquidity, amount_token_min, amount_native_min, to
        )

    @external
    def remove_liquidity_with_permit(
        self,
        sender: str,
        token_a: str,
        token_b: str,
        liquidity: int,
        amount_a_min: int,
        amount_b_min: int,
        to: str,
        deadline: int,
        approve_max: bool,
        v: int,
        r: int,
        s: int,
    ) -> tuple[int, int]:
        """remove_liquidity with the share approval given as a signed permit."""
        self._ensure(deadline)
        pool = library.get_pool(self.chain, self.factory, token_a, token_b)
        self._permit(pool, sender, liquidity, deadline, approve_max, v, r, s)
        return self._remove_liquidity(
            sender, token_a, token_b, liquidity, amount_a_min, amount_b_min, to
        )

    @external
    def remove_liquidity_native_with_permit(
        self,
        sender: str,
        token: str,
        liquidity: int,
        amount_token_min: int,
        amount_native_min: int,
        to: str,
        deadline: int,
        approve_max: bool,
        v: int,
        r: int,
        s: int,
    ) -> tuple[int, int]:
        """remove_liquidity_native with the share approval given as a signed permit."""
        self._ensure(deadline)
        pool = library.get_pool(self.chain, self.factory, token, self.wrapped_native)
        self._permit(pool, sender, liquidity, deadline, approve_max, v, r, s)
        return self._remove_liquidity_native(
            sender, token, liquidity, amount_token_min, amount_native_min, to
        )

    # --- Swaps ---

    @external
    def swap_exact_tokens_for_tokens(
        self,
        sender: str,
        amount_in: int,
        amount_out_min: int,
        path: list[str],
        to: str,
        deadline: int,
    ) -> list[int]:
        """Swap an exact input along ``path``.

        Returns:
            Amounts at every step, input first

        Raises:
            InsufficientOutputAmount: If the final output is below amount_out_min
        """
        self._ensure(deadline)
        path = library.check_path(path)
        amounts = library.get_amounts_out(self.chain, self.factory, amount_in, path)
        self._check_min_out(amounts, amount_out_min)
        self._safe_transfer_from(
            path[0], sender, pool_for(self.factory, path[0], path[1]), amounts[0]
        )
        self._swap(amounts, path, to)
        self._log_swap(path, amounts, to)
        return amounts

    @external
    def swap_tokens_for_exact_tokens(
        self,
        sender: str,
        amount_out: int,
        amount_in_max: int,
        path: list[str],
        to: str,
        deadline: int,
    ) -> list[int]:
        """Swap for an exact output along ``path``.

        Raises:
            ExcessiveInputAmount: If the required input exceeds amount_in_max
        """
        self._ensure(deadline)
        path = library.check_path(path)
        amounts = library.get_amounts_in(self.chain, self.factory, amount_out, path)
        self._check_max_in(amounts, amount_in_max)
        self._safe_transfer_from(
            path[0], sender, pool_for(self.factory, path[0], path[1]), amounts[0]
        )
        self._swap(amounts, path, to)
        self._log_swap(path, amounts, to)
        return amounts

    @external
    def swap_exact_native_for_tokens(
        self,
        sender: str,
        amount_out_min: int,
        path: list[str],
        to: str,
        deadline: int,
        value: int,
    ) -> list[int]:
        """Swap all of ``value`` native coin along a path starting at wrapped native."""
        self.chain.attach_value(sender, self.address, value)
        self._ensure(deadline)
        path = self._check_native_path(path, first=True)
        amounts = library.get_amounts_out(self.chain, self.factory, value, path)
        self._check_min_out(amounts, amount_out_min)
        self._wrap_into(pool_for(self.factory, path[0], path[1]), amounts[0])
        self._swap(amounts, path, to)
        self._log_swap(path, amounts, to)
        return amounts

    @external
    def swap_native_for_exact_tokens(
        self,
        sender: str,
        amount_out: int,
        path: list[str],
        to: str,
        deadline: int,
        value: int,
    ) -> list[int]:
        """Buy an exact output with native coin; unspent ``value`` is refunded."""
        self.chain.attach_value(sender, self.address, value)
        self._ensure(deadline)
        path = self._check_native_path(path, first=True)
        amounts = library.get_amounts_in(self.chain, self.factory, amount_out, path)
        self._check_max_in(amounts, value)
        self._wrap_into(pool_for(self.factory, path[0], path[1]), amounts[0])
        self._swap(amounts, path, to)
        if value > amounts[0]:
            self.chain.transfer_native(self.address, sender, value - amounts[0])
        self._log_swap(path, amounts, to)
        return amounts

    @external
    def swap_exact_tokens_for_native(
        self,
        sender: str,
        amount_in: int,
        amount_out_min: int,
        path: list[str],
        to: str,
        deadline: int,
    ) -> list[int]:
        """Swap an exact token input for native coin (path ends at wrapped native)."""
        self._ensure(deadline)
        path = self._check_native_path(path, first=False)
        amounts = library.get_amounts_out(self.chain, self.factory, amount_in, path)
        self._check_min_out(amounts, amount_out_min)
        self._safe_transfer_from(
            path[0], sender, pool_for(self.factory, path[0], path[1]), amounts[0]
        )
        self._swap(amounts, path, self.address)
        self._unwrap_to(to, amounts[-1])
        self._log_swap(path, amounts, to)
        return amounts

    @external
    def swap_tokens_for_exact_native(
        self,
        sender: str,
        amount_out: int,
        amount_in_max: int,
        path: list[str],
        to: str,
        deadline: int,
    ) -> list[int]:
        """Swap tokens for an exact amount of native coin."""
        self._ensure(deadline)
        path = self._check_native_path(path, first=False)
        amounts = library.get_amounts_in(self.chain, self.factory, amount_out, path)
        self._check_max_in(amounts, amount_in_max)
        self._safe_transfer_from(
            path[0], sender, pool_for(self.factory, path[0], path[1]), amounts[0]
        )
        self._swap(amounts, path, self.address)
        self._unwrap_to(to, amounts[-1])
        self._log_swap(path, amounts, to)
        return amounts

    # --- Views ---

    def quote(self, amount_a: int, reserve_a: int, reserve_b: int) -> int:
        return library.quote(amount_a, reserve_a, reserve_b)

    def get_amount_out(self, amount_in: int, token_in: str, token_out: str) -> int:
        """Single-hop exact-input quote, priced with the pool's own policy."""
        pool = library.get_pool(self.chain, self.factory, token_in, token_out)
        return PoolSnapshot.of(pool).get_amount_out(token_in, amount_in)

    def get_amount_in(self, amount_out: int, token_in: str, token_out: str) -> int:
        """Single-hop exact-output quote, priced with the pool's own policy."""
        pool = library.get_pool(self.chain, self.factory, token_in, token_out)
        return PoolSnapshot.of(pool).get_amount_in(token_in, amount_out)

    def get_amounts_out(self, amount_in: int, path: list[str]) -> list[int]:
        return library.get_amounts_out(self.chain, self.factory, amount_in, path)

    def get_amounts_in(self, amount_out: int, path: list[str]) -> list[int]:
        return library.get_amounts_in(self.chain, self.factory, amount_out, path)

    # --- Internals ---

    def _ensure(self, deadline: int) -> None:
        if self.chain.timestamp > deadline:
            raise Expired(f"deadline {deadline} passed at {self.chain.timestamp}")

    def _weth(self) -> WrappedNative:
        return self.chain.at(self.wrapped_native, WrappedNative)

    def _token(self, address: str) -> FungibleToken:
        return self.chain.at(address, FungibleToken)

    def _safe_transfer(self, token: str, to: str, amount: int) -> None:
        if not self._token(token).transfer(self.address, to, amount):
            raise TransferFailed(f"transfer of {amount} {token} to {to} failed")

    def _safe_transfer_from(self, token: str, owner: str, to: str, amount: int) -> None:
        if not self._token(token).transfer_from(self.address, owner, to, amount):
            raise TransferFailed(f"transfer of {amount} {token} from {owner} failed")

    def _wrap_into(self, pool: str, amount: int) -> None:
        self._weth().deposit(self.address, amount)
        self._safe_transfer(self.wrapped_native, pool, amount)

    def _unwrap_to(self, to: str, amount: int) -> None:
        self._weth().withdraw(self.address, amount)
        self.chain.transfer_native(self.address, to, amount)

    def _check_native_path(self, path: list[str], *, first: bool) -> list[str]:
        path = library.check_path(path)
        end = path[0] if first else path[-1]
        if end != self.wrapped_native:
            side = "start" if first else "end"
            raise InvalidPath(f"path must {side} with wrapped native {self.wrapped_native}")
        return path

    @staticmethod
    def _check_min_out(amounts: list[int], amount_out_min: int) -> None:
        if amounts[-1] < amount_out_min:
            raise InsufficientOutputAmount(f"output {amounts[-1]} < minimum {amount_out_min}")

    @staticmethod
    def _check_max_in(amounts: list[int], amount_in_max: int) -> None:
        if amounts[0] > amount_in_max:
            raise ExcessiveInputAmount(f"input {amounts[0]} > maximum {amount_in_max}")

    def _add_liquidity(
        self,
        token_a: str,
        token_b: str,
        amount_a_desired: int,
        amount_b_desired: int,
        amount_a_min: int,
        amount_b_min: int,
    ) -> tuple[int, int]:
        factory = self.chain.at(self.factory, Factory)
        if factory.get_pool(token_a, token_b) is None:
            factory.create_pool(self.address, token_a, token_b)

        reserve_a, reserve_b = library.get_reserves(self.chain, self.factory, token_a, token_b)
        if reserve_a == 0 and reserve_b == 0:
            return amount_a_desired, amount_b_desired

        amount_b_optimal = library.quote(amount_a_desired, reserve_a, reserve_b)
        if amount_b_optimal <= amount_b_desired:
            if amount_b_optimal < amount_b_min:
                raise InsufficientBAmount(f"amount B {amount_b_optimal} < minimum {amount_b_min}")
            return amount_a_desired, amount_b_optimal

        amount_a_optimal = library.quote(amount_b_desired, reserve_b, reserve_a)
        if amount_a_optimal > amount_a_desired or amount_a_optimal < amount_a_min:
            raise InsufficientAAmount(f"amount A {amount_a_optimal} < minimum {amount_a_min}")
        return amount_a_optimal, amount_b_desired

    def _remove_liquidity(
        self,
        sender: str,
        token_a: str,
        token_b: str,
        liquidity: int,
        amount_a_min: int,
        amount_b_min: int,
        to: str,
    ) -> tuple[int, int]:
        pool = library.get_pool(self.chain, self.factory, token_a, token_b)
        if not pool.transfer_from(self.address, sender, pool.address, liquidity):
            raise TransferFailed(f"share transfer of {liquidity} from {sender} failed")
        amount0, amount1 = pool.burn(self.address, to)

        token0, _ = sort_tokens(token_a, token_b)
        if normalize_address(token_a) == token0:
            amount_a, amount_b = amount0, amount1
        else:
            amount_a, amount_b = amount1, amount0
        if amount_a < amount_a_min:
            raise InsufficientAAmount(f"amount A {amount_a} < minimum {amount_a_min}")
        if amount_b < amount_b_min:
            raise InsufficientBAmount(f"amount B {amount_b} < minimum {amount_b_min}")

        logger.info(
            "liquidity_removed",
            pool=pool.address,
            liquidity=liquidity,
            amount_a=amount_a,
            amount_b=amount_b,
        )
        return amount_a, amount_b

    def _remove_liquidity_native(
        self,
        sender: str,
        token: str,
        liquidity: int,
        amount_token_min: int,
        amount_native_min: int,
        to: str,
    ) -> tuple[int, int]:
        amount_token, amount_native = self._remove_liquidity(
            sender,
            token,
            self.wrapped_native,
            liquidity,
            amount_token_min,
            amount_native_min,
            self.address,
        )
        self._safe_transfer(token, to, amount_token)
        self._unwrap_to(to, amount_native)
        return amount_token, amount_native

    def _permit(
        self,
        pool: Pool,
        owner: str,
        liquidity: int,
        deadline: int,
        approve_max: bool,
        v: int,
        r: int,
        s: int,
    ) -> None:
        value = UINT256_MAX if approve_max else liquidity
        pool.permit(self.address, owner, self.address, value, deadline, v, r, s)

    def _swap(self, amounts: list[int], path: list[str], to: str) -> None:
        """Run every hop; each pool pays straight into the next one."""
        for i, (token_in, token_out) in enumerate(zip(path, path[1:])):
            token0, _ = sort_tokens(token_in, token_out)
            amount_out = amounts[i + 1]
            if token_in == token0:
                amount0_out, amount1_out = 0, amount_out
            else:
                amount0_out, amount1_out = amount_out, 0
            if i < len(path) - 2:
                recipient = pool_for(self.factory, token_out, path[i + 2])
            else:
                recipient = to
            pool = library.get_pool(self.chain, self.factory, token_in, token_out)
            pool.swap(self.address, amount0_out, amount1_out, recipient)

    def _log_swap(self, path: list[str], amounts: list[int], to: str) -> None:
        logger.info(
            "swap_routed",
            hops=len(path) - 1,
            token_in=path[0],
            token_out=path[-1],
            amount_in=amounts[0],
            amount_out=amounts[-1],
            to=normalize_address(to),
        )


__all__ = ["Router"]

"""Pricing policies for pools.

A pool carries exactly one policy for its whole life:

- ConstantProduct: x * y = k with a swap fee charged on input and a block of
  shares locked forever on the first deposit.
- FixedInitialRatio: every swap exchanges at the ratio of the pool's first
  deposit, with no fee and no locked shares.

Policies are plain data. The functions below dispatch on the policy type, so
quoting (router side) and validation (pool side) share one implementation.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TypeAlias

from exchange.constants import (
    DEFAULT_FEE_DENOMINATOR,
    DEFAULT_FEE_NUMERATOR,
    MINIMUM_LIQUIDITY,
)
from exchange.errors import (
    InsufficientInputAmount,
    InsufficientLiquidity,
    InsufficientOutputAmount,
    InvalidInputOutput,
    InvariantViolation,
)
from exchange.safe_int import S


class PricingKind(str, Enum):
    """Wire/config name of a pricing policy."""

    CONSTANT_PRODUCT = "constant_product"
    FIXED_INITIAL_RATIO = "fixed_initial_ratio"


@dataclass(frozen=True)
class ConstantProduct:
    """Constant-product pricing with an input fee.

    Attributes:
        fee_numerator: Share of the input that counts toward the invariant
        fee_denominator: Fee base (997/1000 means a 0.3% fee)
        minimum_liquidity: Shares locked to the zero address on first deposit
    """

    fee_numerator: int = DEFAULT_FEE_NUMERATOR
    fee_denominator: int = DEFAULT_FEE_DENOMINATOR
    minimum_liquidity: int = MINIMUM_LIQUIDITY

    def __post_init__(self) -> None:
        if self.fee_denominator <= 0:
            raise ValueError(f"fee_denominator must be positive, got {self.fee_denominator}")
        if not 0 < self.fee_numerator <= self.fee_denominator:
            raise ValueError(
                f"fee_numerator must be in (0, {self.fee_denominator}], got {self.fee_numerator}"
            )
        if self.minimum_liquidity < 0:
            raise ValueError(f"minimum_liquidity cannot be negative: {self.minimum_liquidity}")

    @property
    def kind(self) -> PricingKind:
        return PricingKind.CONSTANT_PRODUCT


@dataclass(frozen=True)
class FixedInitialRatio:
    """Swaps at the ratio fixed by the pool's first deposit."""

    @property
    def kind(self) -> PricingKind:
        return PricingKind.FIXED_INITIAL_RATIO


PricingPolicy: TypeAlias = ConstantProduct | FixedInitialRatio


def locked_liquidity(policy: PricingPolicy) -> int:
    """Shares burned to the zero address on the first deposit."""
    if isinstance(policy, ConstantProduct):
        return policy.minimum_liquidity
    return 0


def collects_protocol_fee(policy: PricingPolicy) -> bool:
    """Whether the registry fee recipient can accrue shares from this pool."""
    return isinstance(policy, ConstantProduct)


def get_amount_out(
    policy: PricingPolicy,
    amount_in: int,
    reserve_in: int,
    reserve_out: int,
    initial_in: int = 0,
    initial_out: int = 0,
) -> int:
    """Output received for an exact input.

    Args:
        policy: Pool pricing policy
        amount_in: Input token amount
        reserve_in: Reserve of input token in pool
        reserve_out: Reserve of output token in pool
        initial_in: First-deposit amount of the input token (fixed ratio only)
        initial_out: First-deposit amount of the output token (fixed ratio only)

    Raises:
        InsufficientInputAmount: If amount_in is zero
        InsufficientLiquidity: If the pool cannot pay any output
    """
    if amount_in <= 0:
        raise InsufficientInputAmount(f"amount_in must be positive, got {amount_in}")
    if reserve_in <= 0 or reserve_out <= 0:
        raise InsufficientLiquidity(f"empty reserves: {reserve_in}, {reserve_out}")

    if isinstance(policy, ConstantProduct):
        amount_in_with_fee = S(amount_in) * policy.fee_numerator
        numerator = amount_in_with_fee * reserve_out
        denominator = S(reserve_in) * policy.fee_denominator + amount_in_with_fee
        return (numerator // denominator).value

    if initial_in <= 0 or initial_out <= 0:
        raise InsufficientLiquidity("pool has no initial ratio")
    amount_out = (S(amount_in) * initial_out // initial_in).value
    if amount_out >= reserve_out:
        raise InsufficientLiquidity(f"output {amount_out} would drain reserve {reserve_out}")
    return amount_out


def get_amount_in(
    policy: PricingPolicy,
    amount_out: int,
    reserve_in: int,
    reserve_out: int,
    initial_in: int = 0,
    initial_out: int = 0,
) -> int:
    """Input required for an exact output.

    For the fixed ratio the smallest input whose floor-rounded output equals
    ``amount_out`` is returned. Some outputs are unreachable (when the ratio
    skips over them) and raise InvalidInputOutput.

    Raises:
        InsufficientOutputAmount: If amount_out is zero
        InsufficientLiquidity: If amount_out would drain the output reserve
        InvalidInputOutput: If no integer input yields exactly amount_out
    """
    if amount_out <= 0:
        raise InsufficientOutputAmount(f"amount_out must be positive, got {amount_out}")
    if reserve_in <= 0 or reserve_out <= 0:
        raise InsufficientLiquidity(f"empty reserves: {reserve_in}, {reserve_out}")
    if amount_out >= reserve_out:
        raise InsufficientLiquidity(f"output {amount_out} would drain reserve {reserve_out}")

    if isinstance(policy, ConstantProduct):
        numerator = S(reserve_in) * amount_out * policy.fee_denominator
        denominator = (S(reserve_out) - amount_out) * policy.fee_numerator
        return (numerator // denominator + 1).value

    if initial_in <= 0 or initial_out <= 0:
        raise InsufficientLiquidity("pool has no initial ratio")
    amount_in = (S(amount_out) * initial_in).ceiling_div(initial_out)
    if (amount_in * initial_out // initial_in) != amount_out:
        raise InvalidInputOutput(
            f"output {amount_out} is not reachable at ratio {initial_in}:{initial_out}"
        )
    return amount_in.value


def check_swap(
    policy: PricingPolicy,
    *,
    balance0: int,
    balance1: int,
    reserve0: int,
    reserve1: int,
    amount0_in: int,
    amount1_in: int,
    amount0_out: int,
    amount1_out: int,
    initial0: int = 0,
    initial1: int = 0,
) -> None:
    """Validate post-swap balances against the policy.

    Raises:
        InsufficientInputAmount: Constant product, nothing was paid in
        InvariantViolation: Constant product, fee-adjusted k decreased
        InvalidInputOutput: Fixed ratio, amounts do not match the initial ratio
    """
    if isinstance(policy, ConstantProduct):
        if amount0_in <= 0 and amount1_in <= 0:
            raise InsufficientInputAmount("no input received")
        fee_cut = policy.fee_denominator - policy.fee_numerator
        balance0_adjusted = S(balance0) * policy.fee_denominator - S(amount0_in) * fee_cut
        balance1_adjusted = S(balance1) * policy.fee_denominator - S(amount1_in) * fee_cut
        k_before = S(reserve0) * reserve1 * policy.fee_denominator**2
        if balance0_adjusted * balance1_adjusted < k_before:
            raise InvariantViolation("K")
        return

    if initial0 <= 0 or initial1 <= 0:
        raise InsufficientLiquidity("pool has no initial ratio")

    if amount0_in > 0 and amount1_in == 0:
        expected = (S(amount0_in) * initial1 // initial0).value
        valid = amount0_out == 0 and amount1_out == expected
    elif amount1_in > 0 and amount0_in == 0:
        expected = (S(amount1_in) * initial0 // initial1).value
        valid = amount1_out == 0 and amount0_out == expected
    else:
        valid = False

    if not valid:
        raise InvalidInputOutput(
            f"Invalid Input Output: in=({amount0_in}, {amount1_in}) "
            f"out=({amount0_out}, {amount1_out}) ratio={initial0}:{initial1}"
        )


def policy_from_kind(
    kind: PricingKind | str,
    fee_numerator: int = DEFAULT_FEE_NUMERATOR,
    fee_denominator: int = DEFAULT_FEE_DENOMINATOR,
    minimum_liquidity: int = MINIMUM_LIQUIDITY,
) -> PricingPolicy:
    """Build a policy from its config name."""
    kind = PricingKind(kind)
    if kind is PricingKind.CONSTANT_PRODUCT:
        return ConstantProduct(
            fee_numerator=fee_numerator,
            fee_denominator=fee_denominator,
            minimum_liquidity=minimum_liquidity,
        )
    return FixedInitialRatio()


__all__ = [
    "PricingKind",
    "ConstantProduct",
    "FixedInitialRatio",
    "PricingPolicy",
    "locked_liquidity",
    "collects_protocol_fee",
    "get_amount_out",
    "get_amount_in",
    "check_swap",
    "policy_from_kind",
]

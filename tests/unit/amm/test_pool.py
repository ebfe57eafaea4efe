"""Tests for Pool mint/burn/swap on both pricing policies."""

import pytest

from exchange.amm.pool import LockState, Pool
from exchange.amm.pricing import get_amount_out
from exchange.chain.chain import Chain, Contract
from exchange.constants import MINIMUM_LIQUIDITY, Q112, TIMESTAMP_MODULUS
from exchange.errors import (
    InsufficientInputAmount,
    InsufficientLiquidity,
    InsufficientLiquidityBurned,
    InsufficientLiquidityMinted,
    InsufficientOutputAmount,
    InvalidInputOutput,
    InvalidRecipient,
    InvariantViolation,
    Reentrant,
    ReserveOverflow,
)
from exchange.ledger.erc20 import FungibleToken, MintableToken
from exchange.models.events import Burn, Mint, Swap, Sync, Transfer
from exchange.models.types import ZERO_ADDRESS
from exchange.safe_int import S
from tests.helpers import (
    DEPLOYER,
    ETHER,
    FEE_RECIPIENT,
    INITIAL_MINTED,
    LIQUIDITY_PROVIDER,
    SECOND_TRADER,
    TRADER,
)

AMOUNT0 = 500 * ETHER  # rate 1:10
AMOUNT1 = 5000 * ETHER
SWAP_AMOUNT = 10 * ETHER


def add_liquidity(
    pool: Pool, token0: MintableToken, token1: MintableToken, a0: int, a1: int
) -> int:
    token0.transfer(LIQUIDITY_PROVIDER, pool.address, a0)
    token1.transfer(LIQUIDITY_PROVIDER, pool.address, a1)
    return pool.mint(LIQUIDITY_PROVIDER, LIQUIDITY_PROVIDER)


def remove_liquidity(pool: Pool, shares: int) -> tuple[int, int]:
    pool.transfer(LIQUIDITY_PROVIDER, pool.address, shares)
    return pool.burn(LIQUIDITY_PROVIDER, LIQUIDITY_PROVIDER)


def pay_in(token: MintableToken, pool: Pool, amount: int, trader: str = TRADER) -> None:
    token.transfer(trader, pool.address, amount)


@pytest.fixture
def pool(deployment, tokens) -> Pool:
    token0, token1 = tokens
    address = deployment.factory.create_pool(LIQUIDITY_PROVIDER, token0.address, token1.address)
    return deployment.chain.at(address, Pool)


@pytest.fixture
def cp_pool(cp_deployment, cp_tokens) -> Pool:
    token0, token1 = cp_tokens
    address = cp_deployment.factory.create_pool(
        LIQUIDITY_PROVIDER, token0.address, token1.address
    )
    return cp_deployment.chain.at(address, Pool)


class TestFixedRatioMint:
    """Tests for minting shares in a fixed-ratio pool."""

    def test_first_mint(self, chain, pool, tokens):
        """First deposit mints sqrt(a0 * a1) and records the initial ratio."""
        token0, token1 = tokens
        expected = S(AMOUNT0 * AMOUNT1).sqrt().value

        with chain.capture() as events:
            liquidity = add_liquidity(pool, token0, token1, AMOUNT0, AMOUNT1)

        assert liquidity == expected
        assert events[-3:] == [
            Transfer(pool.address, ZERO_ADDRESS, LIQUIDITY_PROVIDER, expected),
            Sync(pool.address, AMOUNT0, AMOUNT1),
            Mint(pool.address, LIQUIDITY_PROVIDER, AMOUNT0, AMOUNT1),
        ]
        assert pool.total_supply == expected
        assert pool.balance_of(LIQUIDITY_PROVIDER) == expected
        assert pool.balance_of(ZERO_ADDRESS) == 0
        assert pool.get_reserves()[:2] == (AMOUNT0, AMOUNT1)
        assert pool.get_initial_reserves() == (AMOUNT0, AMOUNT1)

    def test_mint_at_different_rate(self, pool, tokens):
        """Later deposits mint pro rata to the scarcer side; initial ratio is unchanged."""
        token0, token1 = tokens
        first = add_liquidity(pool, token0, token1, AMOUNT0, AMOUNT1)

        a0, a1 = 100 * ETHER, 1500 * ETHER  # rate 1:15
        expected = a0 * pool.total_supply // AMOUNT0
        with pool.chain.capture() as events:
            second = add_liquidity(pool, token0, token1, a0, a1)

        assert second == expected
        assert events[-1] == Mint(pool.address, LIQUIDITY_PROVIDER, a0, a1)
        assert pool.total_supply == first + second
        assert pool.get_reserves()[:2] == (AMOUNT0 + a0, AMOUNT1 + a1)
        assert pool.get_initial_reserves() == (AMOUNT0, AMOUNT1)

    def test_mint_without_deposit_fails(self, pool, tokens):
        token0, token1 = tokens
        add_liquidity(pool, token0, token1, AMOUNT0, AMOUNT1)
        with pytest.raises(InsufficientLiquidityMinted):
            pool.mint(LIQUIDITY_PROVIDER, LIQUIDITY_PROVIDER)

    def test_one_sided_first_deposit_fails(self, pool, tokens):
        token0, _ = tokens
        token0.transfer(LIQUIDITY_PROVIDER, pool.address, AMOUNT0)
        with pytest.raises(InsufficientLiquidityMinted):
            pool.mint(LIQUIDITY_PROVIDER, LIQUIDITY_PROVIDER)
        assert pool.get_initial_reserves() == (0, 0)


class TestFixedRatioBurn:
    """Tests for burning shares in a fixed-ratio pool."""

    def test_burn_everything_drains_pool(self, chain, pool, tokens):
        """No shares are locked, so the only provider gets every token back."""
        token0, token1 = tokens
        liquidity = add_liquidity(pool, token0, token1, AMOUNT0, AMOUNT1)
        pool.transfer(LIQUIDITY_PROVIDER, pool.address, liquidity)

        with chain.capture() as events:
            amounts = pool.burn(LIQUIDITY_PROVIDER, LIQUIDITY_PROVIDER)

        assert amounts == (AMOUNT0, AMOUNT1)
        assert events == [
            Transfer(pool.address, pool.address, ZERO_ADDRESS, liquidity),
            Transfer(token0.address, pool.address, LIQUIDITY_PROVIDER, AMOUNT0),
            Transfer(token1.address, pool.address, LIQUIDITY_PROVIDER, AMOUNT1),
            Sync(pool.address, 0, 0),
            Burn(pool.address, LIQUIDITY_PROVIDER, AMOUNT0, AMOUNT1, LIQUIDITY_PROVIDER),
        ]
        assert pool.total_supply == 0
        assert token0.balance_of(pool.address) == 0
        assert token1.balance_of(pool.address) == 0
        assert token0.balance_of(LIQUIDITY_PROVIDER) == INITIAL_MINTED
        assert token1.balance_of(LIQUIDITY_PROVIDER) == INITIAL_MINTED

    def test_burn_at_different_rate(self, pool, tokens):
        """Two burns after deposits at different rates return everything, pro rata."""
        token0, token1 = tokens
        first = add_liquidity(pool, token0, token1, AMOUNT0, AMOUNT1)
        second = add_liquidity(pool, token0, token1, 100 * ETHER, 1500 * ETHER)

        reserve0, reserve1, _ = pool.get_reserves()
        total_supply = pool.total_supply
        amounts = remove_liquidity(pool, first)
        assert amounts == (first * reserve0 // total_supply, first * reserve1 // total_supply)

        reserve0, reserve1, _ = pool.get_reserves()
        assert remove_liquidity(pool, second) == (reserve0, reserve1)
        assert pool.get_reserves()[:2] == (0, 0)
        assert token0.balance_of(LIQUIDITY_PROVIDER) == INITIAL_MINTED
        assert token1.balance_of(LIQUIDITY_PROVIDER) == INITIAL_MINTED

    def test_burn_without_shares_fails(self, pool, tokens):
        token0, token1 = tokens
        add_liquidity(pool, token0, token1, AMOUNT0, AMOUNT1)
        with pytest.raises(InsufficientLiquidityBurned):
            pool.burn(LIQUIDITY_PROVIDER, LIQUIDITY_PROVIDER)

    def test_refill_after_drain_keeps_initial_ratio(self, pool, tokens):
        token0, token1 = tokens
        liquidity = add_liquidity(pool, token0, token1, AMOUNT0, AMOUNT1)
        remove_liquidity(pool, liquidity)

        add_liquidity(pool, token0, token1, 10 * ETHER, 20 * ETHER)
        assert pool.get_initial_reserves() == (AMOUNT0, AMOUNT1)
        pay_in(token1, pool, 10 * ETHER)
        pool.swap(TRADER, ETHER, 0, TRADER)


class TestFixedRatioSwap:
    """Tests for fixed-ratio swaps."""

    @pytest.fixture(autouse=True)
    def seeded(self, pool, tokens):
        token0, token1 = tokens
        add_liquidity(pool, token0, token1, AMOUNT0, AMOUNT1)

    def test_swap_token0_for_token1(self, chain, pool, tokens):
        token0, token1 = tokens
        reserve0, reserve1, _ = pool.get_reserves()
        amount_out = SWAP_AMOUNT * AMOUNT1 // AMOUNT0

        pay_in(token0, pool, SWAP_AMOUNT)
        with chain.capture() as events:
            pool.swap(TRADER, 0, amount_out, TRADER)

        assert events == [
            Transfer(token1.address, pool.address, TRADER, amount_out),
            Sync(pool.address, reserve0 + SWAP_AMOUNT, reserve1 - amount_out),
            Swap(pool.address, TRADER, SWAP_AMOUNT, 0, 0, amount_out, TRADER),
        ]
        assert token0.balance_of(TRADER) == INITIAL_MINTED - SWAP_AMOUNT
        assert token1.balance_of(TRADER) == INITIAL_MINTED + amount_out

    def test_swap_token1_for_token0(self, chain, pool, tokens):
        token0, token1 = tokens
        reserve0, reserve1, _ = pool.get_reserves()
        amount_out = SWAP_AMOUNT * AMOUNT0 // AMOUNT1

        pay_in(token1, pool, SWAP_AMOUNT)
        with chain.capture() as events:
            pool.swap(TRADER, amount_out, 0, TRADER)

        assert events[-2:] == [
            Sync(pool.address, reserve0 - amount_out, reserve1 + SWAP_AMOUNT),
            Swap(pool.address, TRADER, 0, SWAP_AMOUNT, amount_out, 0, TRADER),
        ]
        assert token0.balance_of(TRADER) == INITIAL_MINTED + amount_out

    def test_price_is_constant_across_swaps(self, pool, tokens):
        """The second trader gets the same price although reserves moved."""
        _, token1 = tokens
        amount_out = SWAP_AMOUNT * AMOUNT0 // AMOUNT1

        pay_in(token1, pool, SWAP_AMOUNT, TRADER)
        pool.swap(TRADER, amount_out, 0, TRADER)
        pay_in(token1, pool, SWAP_AMOUNT, SECOND_TRADER)
        with pool.chain.capture() as events:
            pool.swap(SECOND_TRADER, amount_out, 0, SECOND_TRADER)

        assert events[-1] == Swap(
            pool.address, SECOND_TRADER, 0, SWAP_AMOUNT, amount_out, 0, SECOND_TRADER
        )

    def test_price_ignores_later_deposit_ratio(self, pool, tokens):
        token0, token1 = tokens
        add_liquidity(pool, token0, token1, 100 * ETHER, 1500 * ETHER)
        amount_out = SWAP_AMOUNT * AMOUNT0 // AMOUNT1

        pay_in(token1, pool, SWAP_AMOUNT)
        pool.swap(TRADER, amount_out, 0, TRADER)
        assert token0.balance_of(TRADER) == INITIAL_MINTED + amount_out

    def test_redundant_output_rejected(self, pool, tokens):
        """Asking for a little of the input token as well is rejected."""
        token0, token1 = tokens
        reserves = pool.get_reserves()

        pay_in(token0, pool, SWAP_AMOUNT)
        with pytest.raises(InvalidInputOutput, match="Invalid Input Output"):
            pool.swap(TRADER, 1, SWAP_AMOUNT * AMOUNT1 // AMOUNT0, TRADER)

        assert pool.get_reserves() == reserves
        assert token1.balance_of(TRADER) == INITIAL_MINTED

    def test_insufficient_input_rejected(self, pool, tokens):
        token0, token1 = tokens
        pay_in(token0, pool, SWAP_AMOUNT - 1)
        with pytest.raises(InvalidInputOutput):
            pool.swap(TRADER, 0, SWAP_AMOUNT * AMOUNT1 // AMOUNT0, TRADER)

        pay_in(token1, pool, SWAP_AMOUNT - 1)
        with pytest.raises(InvalidInputOutput):
            pool.swap(TRADER, SWAP_AMOUNT * AMOUNT0 // AMOUNT1, 0, TRADER)

    def test_one_wei_short_output_rejected(self, pool, tokens):
        token0, _ = tokens
        pay_in(token0, pool, SWAP_AMOUNT)
        with pytest.raises(InvalidInputOutput):
            pool.swap(TRADER, 0, SWAP_AMOUNT * AMOUNT1 // AMOUNT0 - 1, TRADER)

    def test_excess_input_rejected(self, pool, tokens):
        """Overpaying is as invalid as underpaying."""
        token0, _ = tokens
        pay_in(token0, pool, SWAP_AMOUNT + 1)
        with pytest.raises(InvalidInputOutput):
            pool.swap(TRADER, 0, SWAP_AMOUNT * AMOUNT1 // AMOUNT0, TRADER)

    def test_draining_output_rejected(self, pool, tokens):
        token0, token1 = tokens
        pay_in(token1, pool, AMOUNT1)
        with pytest.raises(InsufficientLiquidity):
            pool.swap(TRADER, AMOUNT0, 0, TRADER)
        with pytest.raises(InsufficientLiquidity):
            pool.swap(TRADER, 0, AMOUNT1, TRADER)

    def test_zero_output_rejected(self, pool):
        with pytest.raises(InsufficientOutputAmount):
            pool.swap(TRADER, 0, 0, TRADER)

    def test_recipient_cannot_be_pool_token(self, pool, tokens):
        token0, token1 = tokens
        pay_in(token0, pool, SWAP_AMOUNT)
        with pytest.raises(InvalidRecipient):
            pool.swap(TRADER, 0, SWAP_AMOUNT * AMOUNT1 // AMOUNT0, token1.address)

    def test_callback_to_account_rejected(self, pool, tokens):
        token0, _ = tokens
        pay_in(token0, pool, SWAP_AMOUNT)
        with pytest.raises(InvalidRecipient):
            pool.swap(TRADER, 0, SWAP_AMOUNT * AMOUNT1 // AMOUNT0, TRADER, b"\x01")


class RepayingCallee(Contract):
    """Pays the pool from inside the swap callback (flash swap)."""

    def __init__(self, chain: Chain, address: str, pool: str, token: str, amount: int) -> None:
        super().__init__(chain, address)
        self.pool = pool
        self.token = token
        self.amount = amount
        self.calls: list[tuple[str, int, int, bytes]] = []

    def on_pool_swap(self, sender: str, amount0_out: int, amount1_out: int, data: bytes) -> None:
        self.calls.append((sender, amount0_out, amount1_out, data))
        self.chain.at(self.token, FungibleToken).transfer(self.address, self.pool, self.amount)


class ReenteringCallee(Contract):
    """Calls back into the pool that is paying it."""

    def __init__(self, chain: Chain, address: str, pool: str) -> None:
        super().__init__(chain, address)
        self.pool = pool

    def on_pool_swap(self, sender: str, amount0_out: int, amount1_out: int, data: bytes) -> None:
        self.chain.at(self.pool, Pool).sync(self.address)


class TestSwapCallback:
    """Tests for the swap callback and the reentrancy lock."""

    @pytest.fixture(autouse=True)
    def seeded(self, pool, tokens):
        token0, token1 = tokens
        add_liquidity(pool, token0, token1, AMOUNT0, AMOUNT1)

    def test_flash_swap_repaid_in_callback(self, chain, pool, tokens):
        """Output is sent first; the callee pays inside the callback."""
        token0, token1 = tokens
        amount_out = SWAP_AMOUNT * AMOUNT1 // AMOUNT0
        callee = chain.deploy(
            RepayingCallee, DEPLOYER, pool=pool.address, token=token0.address, amount=SWAP_AMOUNT
        )
        token0.mint(DEPLOYER, callee.address, SWAP_AMOUNT)

        pool.swap(TRADER, 0, amount_out, callee.address, b"flash")

        assert callee.calls == [(TRADER, 0, amount_out, b"flash")]
        assert token1.balance_of(callee.address) == amount_out
        assert token0.balance_of(callee.address) == 0
        assert pool.get_reserves()[:2] == (AMOUNT0 + SWAP_AMOUNT, AMOUNT1 - amount_out)

    def test_reentry_from_callback_rejected(self, chain, pool, tokens):
        token0, token1 = tokens
        reserves = pool.get_reserves()
        callee = chain.deploy(ReenteringCallee, DEPLOYER, pool=pool.address)

        pay_in(token0, pool, SWAP_AMOUNT)
        with pytest.raises(Reentrant):
            pool.swap(TRADER, 0, SWAP_AMOUNT * AMOUNT1 // AMOUNT0, callee.address, b"\x01")

        assert pool.lock is LockState.UNLOCKED
        assert pool.get_reserves() == reserves
        assert token1.balance_of(callee.address) == 0


class TestSyncAndSkim:
    """Tests for sync, skim and the reserve bound."""

    @pytest.fixture(autouse=True)
    def seeded(self, pool, tokens):
        token0, token1 = tokens
        add_liquidity(pool, token0, token1, AMOUNT0, AMOUNT1)

    def test_skim_sends_donation_away(self, pool, tokens):
        token0, _ = tokens
        token0.transfer(TRADER, pool.address, 7)
        pool.skim(TRADER, SECOND_TRADER)
        assert token0.balance_of(SECOND_TRADER) == INITIAL_MINTED + 7
        assert token0.balance_of(pool.address) == AMOUNT0

    def test_sync_absorbs_donation(self, chain, pool, tokens):
        token0, _ = tokens
        token0.transfer(TRADER, pool.address, 7)
        with chain.capture() as events:
            pool.sync(TRADER)
        assert events == [Sync(pool.address, AMOUNT0 + 7, AMOUNT1)]

    def test_reserve_overflow(self, pool, tokens):
        token0, _ = tokens
        token0.mint(DEPLOYER, pool.address, 2**112)
        with pytest.raises(ReserveOverflow):
            pool.sync(TRADER)
        assert pool.get_reserves()[0] == AMOUNT0


class TestPriceAccumulators:
    """Tests for the UQ112x112 time-weighted price accumulators."""

    def test_accumulators_start_at_zero(self, pool, tokens):
        token0, token1 = tokens
        add_liquidity(pool, token0, token1, AMOUNT0, AMOUNT1)
        assert pool.price0_cumulative_last == 0
        assert pool.price1_cumulative_last == 0

    def test_sync_accumulates_previous_price(self, chain, pool, tokens):
        token0, token1 = tokens
        add_liquidity(pool, token0, token1, AMOUNT0, AMOUNT1)
        chain.mine(10)
        pool.sync(TRADER)

        assert pool.price0_cumulative_last == (AMOUNT1 * Q112 // AMOUNT0) * 10
        assert pool.price1_cumulative_last == (AMOUNT0 * Q112 // AMOUNT1) * 10
        assert pool.block_timestamp_last == chain.timestamp % TIMESTAMP_MODULUS

    def test_same_block_does_not_accumulate(self, chain, pool, tokens):
        token0, token1 = tokens
        add_liquidity(pool, token0, token1, AMOUNT0, AMOUNT1)
        chain.mine(10)
        pool.sync(TRADER)
        before = pool.price0_cumulative_last
        pool.sync(TRADER)
        assert pool.price0_cumulative_last == before

    def test_swap_accumulates_pre_swap_reserves(self, chain, pool, tokens):
        token0, token1 = tokens
        add_liquidity(pool, token0, token1, AMOUNT0, AMOUNT1)
        chain.mine(5)
        pay_in(token0, pool, SWAP_AMOUNT)
        pool.swap(TRADER, 0, SWAP_AMOUNT * AMOUNT1 // AMOUNT0, TRADER)

        reserve0, reserve1, _ = pool.get_reserves()
        chain.mine(3)
        pool.sync(TRADER)
        assert pool.price0_cumulative_last == (
            (AMOUNT1 * Q112 // AMOUNT0) * 5 + (reserve1 * Q112 // reserve0) * 3
        )

    def test_timestamp_wraps_modulo_2_32(self, chain, pool, tokens):
        token0, token1 = tokens
        chain.set_timestamp(TIMESTAMP_MODULUS - 5)
        add_liquidity(pool, token0, token1, AMOUNT0, AMOUNT1)
        chain.mine(10)
        pool.sync(TRADER)

        assert pool.block_timestamp_last == 5
        assert pool.price0_cumulative_last == (AMOUNT1 * Q112 // AMOUNT0) * 10


class TestConstantProductPool:
    """Tests for the constant-product policy."""

    def test_first_mint_locks_minimum_liquidity(self, cp_deployment, cp_pool, cp_tokens):
        token0, token1 = cp_tokens
        with cp_deployment.chain.capture() as events:
            liquidity = add_liquidity(cp_pool, token0, token1, ETHER, 4 * ETHER)

        assert liquidity == 2 * ETHER - MINIMUM_LIQUIDITY
        assert cp_pool.balance_of(ZERO_ADDRESS) == MINIMUM_LIQUIDITY
        assert cp_pool.total_supply == 2 * ETHER
        assert events[-4:] == [
            Transfer(cp_pool.address, ZERO_ADDRESS, ZERO_ADDRESS, MINIMUM_LIQUIDITY),
            Transfer(cp_pool.address, ZERO_ADDRESS, LIQUIDITY_PROVIDER, liquidity),
            Sync(cp_pool.address, ETHER, 4 * ETHER),
            Mint(cp_pool.address, LIQUIDITY_PROVIDER, ETHER, 4 * ETHER),
        ]

    def test_second_provider_gets_min_of_ratios(self, cp_pool, cp_tokens):
        token0, token1 = cp_tokens
        add_liquidity(cp_pool, token0, token1, AMOUNT0, AMOUNT1)
        supply = cp_pool.total_supply

        # 1:15 against a 1:10 pool: token0 is the binding side
        liquidity = add_liquidity(cp_pool, token0, token1, 100 * ETHER, 1500 * ETHER)

        by_token0 = 100 * ETHER * supply // AMOUNT0
        by_token1 = 1500 * ETHER * supply // AMOUNT1
        assert liquidity == min(by_token0, by_token1) == by_token0
        assert cp_pool.get_reserves()[:2] == (AMOUNT0 + 100 * ETHER, AMOUNT1 + 1500 * ETHER)

    def test_tiny_first_deposit_rejected(self, cp_pool, cp_tokens):
        token0, token1 = cp_tokens
        with pytest.raises(InsufficientLiquidityMinted):
            add_liquidity(cp_pool, token0, token1, 1000, 1000)

    def test_burn_leaves_locked_floor(self, cp_pool, cp_tokens):
        token0, token1 = cp_tokens
        liquidity = add_liquidity(cp_pool, token0, token1, 3 * ETHER, 3 * ETHER)
        amounts = remove_liquidity(cp_pool, liquidity)

        assert amounts == (3 * ETHER - MINIMUM_LIQUIDITY, 3 * ETHER - MINIMUM_LIQUIDITY)
        assert cp_pool.total_supply == MINIMUM_LIQUIDITY
        assert cp_pool.get_reserves()[:2] == (MINIMUM_LIQUIDITY, MINIMUM_LIQUIDITY)

    def test_swap_with_fee(self, cp_pool, cp_tokens):
        token0, token1 = cp_tokens
        add_liquidity(cp_pool, token0, token1, 5 * ETHER, 10 * ETHER)
        expected = 1662497915624478906

        pay_in(token0, cp_pool, ETHER)
        with pytest.raises(InvariantViolation):
            cp_pool.swap(TRADER, 0, expected + 1, TRADER)
        cp_pool.swap(TRADER, 0, expected, TRADER)

        assert cp_pool.get_reserves()[:2] == (6 * ETHER, 10 * ETHER - expected)
        assert token1.balance_of(TRADER) == INITIAL_MINTED + expected

    def test_swap_without_input_rejected(self, cp_pool, cp_tokens):
        token0, token1 = cp_tokens
        add_liquidity(cp_pool, token0, token1, 5 * ETHER, 10 * ETHER)
        with pytest.raises(InsufficientInputAmount):
            cp_pool.swap(TRADER, 0, ETHER, TRADER)


class TestProtocolFee:
    """Tests for the protocol fee on constant-product pools."""

    def test_fee_off_mints_nothing(self, cp_deployment, cp_pool, cp_tokens):
        token0, token1 = cp_tokens
        liquidity = add_liquidity(cp_pool, token0, token1, 1000 * ETHER, 1000 * ETHER)
        pay_in(token1, cp_pool, ETHER)
        cp_pool.swap(TRADER, 996006981039903216, 0, TRADER)
        remove_liquidity(cp_pool, liquidity)

        assert cp_pool.total_supply == MINIMUM_LIQUIDITY
        assert cp_pool.k_last == 0

    def test_fee_on_mints_one_sixth_of_growth(self, cp_deployment, cp_pool, cp_tokens):
        token0, token1 = cp_tokens
        cp_deployment.factory.set_fee_to(cp_deployment.deployer, FEE_RECIPIENT)

        liquidity = add_liquidity(cp_pool, token0, token1, 1000 * ETHER, 1000 * ETHER)
        assert cp_pool.k_last == (1000 * ETHER) ** 2

        pay_in(token1, cp_pool, ETHER)
        cp_pool.swap(TRADER, 996006981039903216, 0, TRADER)
        remove_liquidity(cp_pool, liquidity)

        assert cp_pool.total_supply == MINIMUM_LIQUIDITY + 249750499251388
        assert cp_pool.balance_of(FEE_RECIPIENT) == 249750499251388
        assert token0.balance_of(cp_pool.address) == 1000 + 249501683697445
        assert token1.balance_of(cp_pool.address) == 1000 + 250000187312969

    def test_switching_fee_off_resets_k_last(self, cp_deployment, cp_pool, cp_tokens):
        token0, token1 = cp_tokens
        factory = cp_deployment.factory
        factory.set_fee_to(cp_deployment.deployer, FEE_RECIPIENT)
        add_liquidity(cp_pool, token0, token1, 1000 * ETHER, 1000 * ETHER)
        assert cp_pool.k_last != 0

        factory.set_fee_to(cp_deployment.deployer, ZERO_ADDRESS)
        add_liquidity(cp_pool, token0, token1, ETHER, ETHER)
        assert cp_pool.k_last == 0

    def test_fixed_ratio_pool_never_collects(self, deployment, pool, tokens):
        token0, token1 = tokens
        deployment.factory.set_fee_to(deployment.deployer, FEE_RECIPIENT)
        add_liquidity(pool, token0, token1, AMOUNT0, AMOUNT1)
        assert pool.k_last == 0
        assert pool.balance_of(FEE_RECIPIENT) == 0


class TestConservation:
    """Reserve and share bookkeeping that must hold across operations."""

    def test_burn_then_mint_restores_reserves(self, pool, tokens):
        token0, token1 = tokens
        liquidity = add_liquidity(pool, token0, token1, AMOUNT0, AMOUNT1)
        before = pool.get_reserves()[:2]

        a0, a1 = remove_liquidity(pool, liquidity // 3)
        add_liquidity(pool, token0, token1, a0, a1)

        assert pool.get_reserves()[:2] == before
        assert (token0.balance_of(pool.address), token1.balance_of(pool.address)) == before

    def test_burn_then_mint_restores_constant_product_reserves(self, cp_pool, cp_tokens):
        token0, token1 = cp_tokens
        liquidity = add_liquidity(cp_pool, token0, token1, AMOUNT0, AMOUNT1)
        before = cp_pool.get_reserves()[:2]

        a0, a1 = remove_liquidity(cp_pool, liquidity // 3)
        add_liquidity(cp_pool, token0, token1, a0, a1)

        assert cp_pool.get_reserves()[:2] == before

    def test_share_balances_sum_to_supply(self, cp_deployment, cp_pool, cp_tokens):
        """Holds after the locked-floor mint, later mints, fee mints and burns."""
        token0, token1 = cp_tokens
        cp_deployment.factory.set_fee_to(cp_deployment.deployer, FEE_RECIPIENT)

        def assert_balanced():
            assert sum(cp_pool.balances.values()) == cp_pool.total_supply

        first = add_liquidity(cp_pool, token0, token1, 1000 * ETHER, 1000 * ETHER)
        assert cp_pool.balance_of(ZERO_ADDRESS) == MINIMUM_LIQUIDITY
        assert_balanced()

        pay_in(token1, cp_pool, ETHER)
        cp_pool.swap(TRADER, 996006981039903216, 0, TRADER)
        assert_balanced()

        add_liquidity(cp_pool, token0, token1, 10 * ETHER, 10 * ETHER)
        assert cp_pool.balance_of(FEE_RECIPIENT) > 0
        assert_balanced()

        remove_liquidity(cp_pool, first // 2)
        assert_balanced()

        cp_pool.transfer(LIQUIDITY_PROVIDER, SECOND_TRADER, first // 4)
        assert_balanced()

    @pytest.mark.parametrize(
        "zero_for_one,amount_in",
        [
            (True, 10**6),
            (True, ETHER // 100),
            (True, ETHER),
            (True, 50 * ETHER),
            (False, 10**6),
            (False, ETHER // 100),
            (False, 3 * ETHER),
            (False, 100 * ETHER),
        ],
    )
    def test_constant_product_never_decreases(self, cp_pool, cp_tokens, zero_for_one, amount_in):
        token0, token1 = cp_tokens
        add_liquidity(cp_pool, token0, token1, 5 * ETHER, 10 * ETHER)
        reserve0, reserve1, _ = cp_pool.get_reserves()
        k_before = reserve0 * reserve1

        if zero_for_one:
            amount_out = get_amount_out(cp_pool.policy, amount_in, reserve0, reserve1)
            pay_in(token0, cp_pool, amount_in)
            cp_pool.swap(TRADER, 0, amount_out, TRADER)
        else:
            amount_out = get_amount_out(cp_pool.policy, amount_in, reserve1, reserve0)
            pay_in(token1, cp_pool, amount_in)
            cp_pool.swap(TRADER, amount_out, 0, TRADER)

        reserve0, reserve1, _ = cp_pool.get_reserves()
        assert reserve0 * reserve1 > k_before

    def test_constant_product_never_decreases_over_a_session(self, cp_pool, cp_tokens):
        token0, token1 = cp_tokens
        add_liquidity(cp_pool, token0, token1, 5 * ETHER, 10 * ETHER)
        trades = [
            (True, ETHER),
            (False, 2 * ETHER),
            (True, ETHER // 3),
            (False, 7 * ETHER),
            (True, 12345),
        ]

        for zero_for_one, amount_in in trades:
            reserve0, reserve1, _ = cp_pool.get_reserves()
            k_before = reserve0 * reserve1
            if zero_for_one:
                amount_out = get_amount_out(cp_pool.policy, amount_in, reserve0, reserve1)
                pay_in(token0, cp_pool, amount_in)
                cp_pool.swap(TRADER, 0, amount_out, TRADER)
            else:
                amount_out = get_amount_out(cp_pool.policy, amount_in, reserve1, reserve0)
                pay_in(token1, cp_pool, amount_in)
                cp_pool.swap(TRADER, amount_out, 0, TRADER)

            reserve0, reserve1, _ = cp_pool.get_reserves()
            assert reserve0 * reserve1 >= k_before

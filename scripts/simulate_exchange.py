#!/usr/bin/env python3
"""Deploy an exchange in-process and walk through a liquidity + swap session.

Mirrors the usual deployment scripts: deploy factory and router, list a
token against wrapped native at 1:10, then swap native -> token and back.

Usage:
    python scripts/simulate_exchange.py
    python scripts/simulate_exchange.py --pricing constant_product -v
"""

import argparse
import sys
from pathlib import Path

import structlog

# Add project root to path for imports
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from exchange.amm.pool import Pool  # noqa: E402
from exchange.amm.pricing import PricingKind  # noqa: E402
from exchange.config import ExchangeConfig  # noqa: E402
from exchange.deployment import deploy_exchange  # noqa: E402
from exchange.errors import ExchangeError  # noqa: E402
from exchange.ledger.erc20 import MintableToken  # noqa: E402
from exchange.log import configure_logging  # noqa: E402
from exchange.models.types import UINT256_MAX  # noqa: E402

logger = structlog.get_logger()

ETHER = 10**18
PROVIDER = "0x" + "a1" * 20
TRADER = "0x" + "b2" * 20


def simulate(pricing: PricingKind, native_in: int) -> int:
    deployment = deploy_exchange(ExchangeConfig(pricing=pricing))
    chain, router = deployment.chain, deployment.router
    weth = deployment.wrapped_native.address
    deadline = chain.timestamp + 3600

    token = chain.deploy(MintableToken, deployment.deployer, name="Test Token", symbol="TT")
    token.mint(PROVIDER, PROVIDER, 1 * ETHER)
    token.approve(PROVIDER, router.address, UINT256_MAX)
    chain.fund(PROVIDER, 1 * ETHER)
    chain.fund(TRADER, 1 * ETHER)

    amount_token, amount_native, liquidity = router.add_liquidity_native(
        PROVIDER,
        token.address,
        ETHER // 10,
        0,
        0,
        PROVIDER,
        deadline,
        value=ETHER // 100,
    )
    print(f"Added liquidity: {amount_token} TT + {amount_native} native -> {liquidity} shares")

    chain.mine(12)
    amounts = router.swap_exact_native_for_tokens(
        TRADER, 0, [weth, token.address], TRADER, deadline, value=native_in
    )
    print(f"Swapped {amounts[0]} native for {amounts[-1]} TT")

    token.approve(TRADER, router.address, UINT256_MAX)
    chain.mine(12)
    try:
        amounts = router.swap_exact_tokens_for_native(
            TRADER, amounts[-1], 0, [token.address, weth], TRADER, deadline
        )
        print(f"Swapped {amounts[0]} TT back for {amounts[-1]} native")
    except ExchangeError as err:
        logger.warning("swap_back_failed", error=type(err).__name__, reason=str(err))

    pool = chain.at(deployment.factory.pool_at(0), Pool)
    reserve0, reserve1, timestamp = pool.get_reserves()
    print()
    print(f"Pool {pool.address} ({pool.policy.kind.value})")
    print(f"  reserves:      {reserve0} / {reserve1} @ {timestamp}")
    print(f"  initial:       {pool.initial_reserve0} / {pool.initial_reserve1}")
    print(f"  total shares:  {pool.total_supply}")
    print(f"  price0 cum.:   {pool.price0_cumulative_last}")
    print(f"  trader native: {chain.native_balance(TRADER)}")
    print(f"  router native: {chain.native_balance(router.address)}")
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(description="Simulate an exchange session in-process")
    parser.add_argument(
        "--pricing",
        type=PricingKind,
        choices=list(PricingKind),
        default=PricingKind.FIXED_INITIAL_RATIO,
        help="Pricing policy for created pools (default: fixed_initial_ratio)",
    )
    parser.add_argument(
        "--native-in",
        type=int,
        default=ETHER // 1000,
        help="Native amount (wei) the trader swaps (default: 0.001 ether)",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose logging",
    )
    args = parser.parse_args()

    configure_logging(verbose=args.verbose)

    try:
        return simulate(args.pricing, args.native_in)
    except ExchangeError as err:
        logger.error("simulation_failed", error=type(err).__name__, reason=str(err))
        return 1


if __name__ == "__main__":
    sys.exit(main())

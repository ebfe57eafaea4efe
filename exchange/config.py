"""Exchange deployment configuration."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass

from exchange.amm.pricing import PricingKind, PricingPolicy, policy_from_kind
from exchange.constants import (
    DEFAULT_CHAIN_ID,
    DEFAULT_FEE_DENOMINATOR,
    DEFAULT_FEE_NUMERATOR,
    MINIMUM_LIQUIDITY,
    SHARE_TOKEN_NAME,
    SHARE_TOKEN_SYMBOL,
)


@dataclass(frozen=True)
class ExchangeConfig:
    """Centralized configuration for an exchange deployment.

    Attributes:
        chain_id: Chain id baked into permit signatures
        pricing: Policy given to every pool the registry creates
        fee_numerator: Constant-product input share kept (default: 997)
        fee_denominator: Constant-product fee base (default: 1000)
        minimum_liquidity: Constant-product shares locked on first deposit
        share_name: Name of every pool share token
        share_symbol: Symbol of every pool share token
    """

    chain_id: int = DEFAULT_CHAIN_ID
    pricing: PricingKind = PricingKind.FIXED_INITIAL_RATIO

    # Constant-product parameters (ignored by the fixed ratio)
    fee_numerator: int = DEFAULT_FEE_NUMERATOR
    fee_denominator: int = DEFAULT_FEE_DENOMINATOR
    minimum_liquidity: int = MINIMUM_LIQUIDITY

    share_name: str = SHARE_TOKEN_NAME
    share_symbol: str = SHARE_TOKEN_SYMBOL

    @property
    def default_policy(self) -> PricingPolicy:
        return policy_from_kind(
            self.pricing,
            fee_numerator=self.fee_numerator,
            fee_denominator=self.fee_denominator,
            minimum_liquidity=self.minimum_liquidity,
        )

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> ExchangeConfig:
        """Read overrides from EXCHANGE_* environment variables.

        - EXCHANGE_CHAIN_ID
        - EXCHANGE_PRICING: constant_product or fixed_initial_ratio
        - EXCHANGE_FEE_NUMERATOR / EXCHANGE_FEE_DENOMINATOR
        - EXCHANGE_MINIMUM_LIQUIDITY
        - EXCHANGE_SHARE_NAME / EXCHANGE_SHARE_SYMBOL

        Raises:
            ValueError: If a variable does not parse
        """
        env = os.environ if environ is None else environ
        defaults = cls()
        config = cls(
            chain_id=int(env.get("EXCHANGE_CHAIN_ID", defaults.chain_id)),
            pricing=PricingKind(env.get("EXCHANGE_PRICING", defaults.pricing.value)),
            fee_numerator=int(env.get("EXCHANGE_FEE_NUMERATOR", defaults.fee_numerator)),
            fee_denominator=int(env.get("EXCHANGE_FEE_DENOMINATOR", defaults.fee_denominator)),
            minimum_liquidity=int(
                env.get("EXCHANGE_MINIMUM_LIQUIDITY", defaults.minimum_liquidity)
            ),
            share_name=env.get("EXCHANGE_SHARE_NAME", defaults.share_name),
            share_symbol=env.get("EXCHANGE_SHARE_SYMBOL", defaults.share_symbol),
        )
        # Fail at startup rather than on first pool creation
        _ = config.default_policy
        return config


# Default configuration instance
DEFAULT_EXCHANGE_CONFIG = ExchangeConfig()

__all__ = ["ExchangeConfig", "DEFAULT_EXCHANGE_CONFIG"]

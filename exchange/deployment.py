"""Wire a chain, wrapped native token, factory and router together."""

from __future__ import annotations

from dataclasses import dataclass
from functools import cache

import structlog

from exchange.amm.factory import Factory
from exchange.chain.chain import Chain
from exchange.config import DEFAULT_EXCHANGE_CONFIG, ExchangeConfig
from exchange.constants import DEFAULT_DEPLOYER
from exchange.ledger.native import WrappedNative
from exchange.models.types import normalize_address
from exchange.routing.router import Router

logger = structlog.get_logger()


@dataclass
class Deployment:
    """A deployed exchange and the chain it lives on."""

    chain: Chain
    wrapped_native: WrappedNative
    factory: Factory
    router: Router
    deployer: str
    config: ExchangeConfig


def deploy_exchange(
    config: ExchangeConfig | None = None,
    chain: Chain | None = None,
    deployer: str = DEFAULT_DEPLOYER,
) -> Deployment:
    """Deploy the wrapped native token, the factory and the router.

    The deployer becomes the factory's fee setter.

    Args:
        config: Deployment settings (defaults to DEFAULT_EXCHANGE_CONFIG)
        chain: Chain to deploy on (a fresh one with the config's chain id
            if None)
        deployer: Account that deploys every contract
    """
    config = config or DEFAULT_EXCHANGE_CONFIG
    chain = chain or Chain(chain_id=config.chain_id)
    deployer = normalize_address(deployer, validate=True)

    wrapped_native = chain.deploy(WrappedNative, deployer)
    factory = chain.deploy(
        Factory,
        deployer,
        fee_to_setter=deployer,
        default_policy=config.default_policy,
        share_name=config.share_name,
        share_symbol=config.share_symbol,
    )
    router = chain.deploy(
        Router,
        deployer,
        factory=factory.address,
        wrapped_native=wrapped_native.address,
    )

    logger.info(
        "exchange_deployed",
        chain_id=chain.chain_id,
        factory=factory.address,
        router=router.address,
        wrapped_native=wrapped_native.address,
        pricing=config.pricing.value,
    )
    return Deployment(
        chain=chain,
        wrapped_native=wrapped_native,
        factory=factory,
        router=router,
        deployer=deployer,
        config=config,
    )


@cache
def get_default_deployment() -> Deployment:
    """Process-wide deployment configured from EXCHANGE_* variables."""
    return deploy_exchange(ExchangeConfig.from_env())


__all__ = ["Deployment", "deploy_exchange", "get_default_deployment"]

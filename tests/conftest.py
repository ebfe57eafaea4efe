"""Pytest configuration and fixtures."""

import pytest

from exchange.amm.pricing import PricingKind
from exchange.chain.chain import Chain
from exchange.deployment import Deployment
from exchange.ledger.erc20 import MintableToken
from tests.helpers import (
    INITIAL_MINTED,
    LIQUIDITY_PROVIDER,
    SECOND_TRADER,
    TRADER,
    fund,
    make_deployment,
    make_token_pair,
)


@pytest.fixture
def deployment() -> Deployment:
    """Exchange whose pools use the fixed initial ratio (the default)."""
    return make_deployment(PricingKind.FIXED_INITIAL_RATIO)


@pytest.fixture
def cp_deployment() -> Deployment:
    """Exchange whose pools use constant-product pricing."""
    return make_deployment(PricingKind.CONSTANT_PRODUCT)


@pytest.fixture
def chain(deployment: Deployment) -> Chain:
    return deployment.chain


@pytest.fixture
def tokens(deployment: Deployment) -> tuple[MintableToken, MintableToken]:
    """(token0, token1) on the fixed-ratio deployment, funded for every test account."""
    token0, token1 = make_token_pair(deployment.chain)
    fund([token0, token1], [LIQUIDITY_PROVIDER, TRADER, SECOND_TRADER], INITIAL_MINTED)
    return token0, token1


@pytest.fixture
def cp_tokens(cp_deployment: Deployment) -> tuple[MintableToken, MintableToken]:
    """(token0, token1) on the constant-product deployment, funded for every test account."""
    token0, token1 = make_token_pair(cp_deployment.chain)
    fund([token0, token1], [LIQUIDITY_PROVIDER, TRADER, SECOND_TRADER], INITIAL_MINTED)
    return token0, token1

"""Test helpers module for shared test utilities.

- constants: Accounts, signer keys and common amounts
- factories: Deployment, token, pool and permit factory functions
"""

from tests.helpers.constants import (
    DEPLOYER,
    ETHER,
    FAR_DEADLINE,
    FEE_RECIPIENT,
    INITIAL_MINTED,
    LIQUIDITY_PROVIDER,
    OTHER_KEY,
    SECOND_TRADER,
    SIGNER,
    SIGNER_KEY,
    START_TIME,
    TRADER,
)
from tests.helpers.factories import (
    fund,
    make_deployment,
    make_token,
    make_token_pair,
    seed_pool,
    sign_permit,
)

__all__ = [
    # Constants
    "DEPLOYER",
    "LIQUIDITY_PROVIDER",
    "TRADER",
    "SECOND_TRADER",
    "FEE_RECIPIENT",
    "SIGNER",
    "SIGNER_KEY",
    "OTHER_KEY",
    "ETHER",
    "INITIAL_MINTED",
    "START_TIME",
    "FAR_DEADLINE",
    # Factories
    "make_deployment",
    "make_token",
    "make_token_pair",
    "fund",
    "seed_pool",
    "sign_permit",
]

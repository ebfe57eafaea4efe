"""Protocol constants for the exchange.

Centralizes pool parameters, hashing constants and well-known addresses.
"""

from eth_utils import keccak

from exchange.models.types import ZERO_ADDRESS

# Shares permanently locked to the zero address on a constant-product
# pool's first deposit
MINIMUM_LIQUIDITY = 1000

# Constant-product swap fee: 0.3% charged on input (997/1000 is kept)
DEFAULT_FEE_NUMERATOR = 997
DEFAULT_FEE_DENOMINATOR = 1000

# Protocol fee takes 1/(MULTIPLIER + 1) of the growth in sqrt(k)
PROTOCOL_FEE_MULTIPLIER = 5

# UQ112x112 fixed point used by the price accumulators
Q112 = 2**112
RESERVE_BITS = 112

# Block timestamps are stored modulo 2^32
TIMESTAMP_MODULUS = 2**32

# Pool share token metadata
SHARE_TOKEN_NAME = "Exchange Pool Shares"
SHARE_TOKEN_SYMBOL = "EXS"
SHARE_TOKEN_DECIMALS = 18
PERMIT_VERSION = "1"

# Hardhat/anvil default so signed permits match local tooling
DEFAULT_CHAIN_ID = 31337

# Stand-in for the pool creation bytecode hash in CREATE2 derivation.
# Bump the tag if pool storage layout changes.
POOL_INIT_CODE_HASH = keccak(text="exchange.amm.pool.Pool/v1")

# EIP-712 type hashes
EIP712_DOMAIN_TYPEHASH = keccak(
    text="EIP712Domain(string name,string version,uint256 chainId,address verifyingContract)"
)
PERMIT_TYPEHASH = keccak(
    text="Permit(address owner,address spender,uint256 value,uint256 nonce,uint256 deadline)"
)

# Default account that deploys the exchange contracts
DEFAULT_DEPLOYER = "0x" + "de" * 20

__all__ = [
    "ZERO_ADDRESS",
    "MINIMUM_LIQUIDITY",
    "DEFAULT_FEE_NUMERATOR",
    "DEFAULT_FEE_DENOMINATOR",
    "PROTOCOL_FEE_MULTIPLIER",
    "Q112",
    "RESERVE_BITS",
    "TIMESTAMP_MODULUS",
    "SHARE_TOKEN_NAME",
    "SHARE_TOKEN_SYMBOL",
    "SHARE_TOKEN_DECIMALS",
    "PERMIT_VERSION",
    "DEFAULT_CHAIN_ID",
    "POOL_INIT_CODE_HASH",
    "EIP712_DOMAIN_TYPEHASH",
    "PERMIT_TYPEHASH",
    "DEFAULT_DEPLOYER",
]

"""In-process chain substrate for exchange contracts."""

from exchange.chain.addresses import create2_address, create_address, pair_salt
from exchange.chain.chain import Chain, Contract, external

__all__ = [
    "Chain",
    "Contract",
    "external",
    "create_address",
    "create2_address",
    "pair_salt",
]

"""Contract address derivation.

Any party can compute where a contract lives without asking the chain:

- create: keccak256(deployer ++ uint256 nonce)[12:] (packed, not RLP)
- create2: keccak256(0xff ++ deployer ++ salt ++ init_code_hash)[12:]
"""

from eth_abi.packed import encode_packed
from eth_utils import keccak

from exchange.models.types import address_bytes


def _to_address(digest: bytes) -> str:
    return "0x" + digest[12:].hex()


def create_address(deployer: str, nonce: int) -> str:
    """Address of the ``nonce``-th contract deployed by ``deployer``."""
    packed = encode_packed(["address", "uint256"], [address_bytes(deployer), nonce])
    return _to_address(keccak(packed))


def create2_address(deployer: str, salt: bytes, init_code_hash: bytes) -> str:
    """Deterministic address for a salted deployment.

    Raises:
        ValueError: If salt or init_code_hash is not 32 bytes
    """
    if len(salt) != 32:
        raise ValueError(f"salt must be 32 bytes, got {len(salt)}")
    if len(init_code_hash) != 32:
        raise ValueError(f"init_code_hash must be 32 bytes, got {len(init_code_hash)}")
    return _to_address(keccak(b"\xff" + address_bytes(deployer) + salt + init_code_hash))


def pair_salt(token0: str, token1: str) -> bytes:
    """CREATE2 salt of a sorted token pair."""
    packed = encode_packed(["address", "address"], [address_bytes(token0), address_bytes(token1)])
    return keccak(packed)


__all__ = ["create_address", "create2_address", "pair_salt"]

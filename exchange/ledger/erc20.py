"""Fungible token ledgers.

FungibleToken keeps ERC-20 balances and allowances. An allowance of
UINT256_MAX is treated as infinite and never decremented. PermitToken adds
EIP-712 signed approvals, which pool share tokens inherit.
"""

from __future__ import annotations

import structlog
from eth_abi import encode
from eth_keys import keys
from eth_keys.exceptions import BadSignature
from eth_keys.exceptions import ValidationError as SignatureValidationError
from eth_utils import keccak

from exchange.chain.chain import Chain, Contract, external
from exchange.constants import (
    EIP712_DOMAIN_TYPEHASH,
    PERMIT_TYPEHASH,
    PERMIT_VERSION,
)
from exchange.errors import (
    Expired,
    InsufficientAllowance,
    InsufficientBalance,
    InvalidSignature,
)
from exchange.models.events import Approval, Transfer
from exchange.models.types import UINT256_MAX, ZERO_ADDRESS, normalize_address
from exchange.safe_int import S

logger = structlog.get_logger()


class FungibleToken(Contract):
    """ERC-20 style balance ledger."""

    def __init__(
        self,
        chain: Chain,
        address: str,
        name: str,
        symbol: str,
        decimals: int = 18,
    ) -> None:
        super().__init__(chain, address)
        self.name = name
        self.symbol = symbol
        self.decimals = decimals
        self.total_supply = 0
        self.balances: dict[str, int] = {}
        self.allowances: dict[tuple[str, str], int] = {}

    # --- Views ---

    def balance_of(self, owner: str) -> int:
        return self.balances.get(normalize_address(owner), 0)

    def allowance(self, owner: str, spender: str) -> int:
        return self.allowances.get((normalize_address(owner), normalize_address(spender)), 0)

    # --- Entry points ---

    @external
    def approve(self, sender: str, spender: str, amount: int) -> bool:
        self._approve(sender, spender, amount)
        return True

    @external
    def transfer(self, sender: str, to: str, amount: int) -> bool:
        self._transfer(sender, to, amount)
        return True

    @external
    def transfer_from(self, sender: str, owner: str, to: str, amount: int) -> bool:
        """Move ``amount`` from ``owner`` to ``to`` using the sender's allowance.

        Raises:
            InsufficientAllowance: If sender's allowance is below amount
            InsufficientBalance: If owner holds less than amount
        """
        key = (normalize_address(owner), normalize_address(sender))
        allowed = self.allowances.get(key, 0)
        if allowed != UINT256_MAX:
            if allowed < amount:
                raise InsufficientAllowance(
                    f"{self.symbol}: {sender} may spend {allowed} of {owner}, needs {amount}"
                )
            self.allowances[key] = allowed - amount
        self._transfer(owner, to, amount)
        return True

    # --- Internals ---

    def _approve(self, owner: str, spender: str, amount: int) -> None:
        if not 0 <= amount <= UINT256_MAX:
            raise ValueError(f"Allowance out of uint256 range: {amount}")
        owner = normalize_address(owner)
        spender = normalize_address(spender)
        self.allowances[(owner, spender)] = amount
        self.emit(Approval(self.address, owner, spender, amount))

    def _transfer(self, src: str, dst: str, amount: int) -> None:
        if amount < 0:
            raise ValueError(f"Transfer amount cannot be negative: {amount}")
        src = normalize_address(src)
        dst = normalize_address(dst)
        balance = self.balances.get(src, 0)
        if balance < amount:
            raise InsufficientBalance(f"{self.symbol}: {src} holds {balance}, needs {amount}")
        self.balances[src] = balance - amount
        self.balances[dst] = self.balances.get(dst, 0) + amount
        self.emit(Transfer(self.address, src, dst, amount))

    def _mint(self, to: str, amount: int) -> None:
        to = normalize_address(to)
        self.total_supply = (S(self.total_supply) + amount).to_uint256()
        self.balances[to] = self.balances.get(to, 0) + amount
        self.emit(Transfer(self.address, ZERO_ADDRESS, to, amount))

    def _burn(self, owner: str, amount: int) -> None:
        owner = normalize_address(owner)
        balance = self.balances.get(owner, 0)
        if balance < amount:
            raise InsufficientBalance(
                f"{self.symbol}: cannot burn {amount}, {owner} holds {balance}"
            )
        self.balances[owner] = balance - amount
        self.total_supply -= amount
        self.emit(Transfer(self.address, owner, ZERO_ADDRESS, amount))


class MintableToken(FungibleToken):
    """Token anyone can mint. Used to seed test and simulation accounts."""

    @external
    def mint(self, sender: str, to: str, amount: int) -> None:
        self._mint(to, amount)


class PermitToken(FungibleToken):
    """FungibleToken with EIP-712 signed approvals (EIP-2612)."""

    def __init__(
        self,
        chain: Chain,
        address: str,
        name: str,
        symbol: str,
        decimals: int = 18,
    ) -> None:
        super().__init__(chain, address, name, symbol, decimals)
        self.nonces: dict[str, int] = {}

    @property
    def domain_separator(self) -> bytes:
        return keccak(
            encode(
                ["bytes32", "bytes32", "bytes32", "uint256", "address"],
                [
                    EIP712_DOMAIN_TYPEHASH,
                    keccak(text=self.name),
                    keccak(text=PERMIT_VERSION),
                    self.chain.chain_id,
                    self.address,
                ],
            )
        )

    def nonce_of(self, owner: str) -> int:
        return self.nonces.get(normalize_address(owner), 0)

    def permit_digest(
        self, owner: str, spender: str, value: int, nonce: int, deadline: int
    ) -> bytes:
        """EIP-712 digest a permit signer signs."""
        struct_hash = keccak(
            encode(
                ["bytes32", "address", "address", "uint256", "uint256", "uint256"],
                [
                    PERMIT_TYPEHASH,
                    normalize_address(owner),
                    normalize_address(spender),
                    value,
                    nonce,
                    deadline,
                ],
            )
        )
        return keccak(b"\x19\x01" + self.domain_separator + struct_hash)

    @external
    def permit(
        self,
        sender: str,
        owner: str,
        spender: str,
        value: int,
        deadline: int,
        v: int,
        r: int,
        s: int,
    ) -> None:
        """Set ``owner``'s allowance for ``spender`` from a signature.

        Anyone may submit the permit. The owner's nonce is consumed.

        Raises:
            Expired: If the block time is past the deadline
            InvalidSignature: If the signature does not recover to owner
        """
        if deadline < self.chain.timestamp:
            raise Expired(f"permit deadline {deadline} < {self.chain.timestamp}")
        owner = normalize_address(owner)
        nonce = self.nonce_of(owner)
        digest = self.permit_digest(owner, spender, value, nonce, deadline)

        try:
            signature = keys.Signature(vrs=(v - 27, r, s))
            recovered = signature.recover_public_key_from_msg_hash(digest).to_address()
        except (BadSignature, SignatureValidationError) as err:
            raise InvalidSignature(f"malformed permit signature: {err}") from err

        recovered = normalize_address(recovered)
        if recovered == ZERO_ADDRESS or recovered != owner:
            raise InvalidSignature(f"permit signed by {recovered}, expected {owner}")

        self.nonces[owner] = nonce + 1
        self._approve(owner, spender, value)
        logger.debug("permit_accepted", token=self.address, owner=owner, spender=spender)


__all__ = ["FungibleToken", "MintableToken", "PermitToken"]

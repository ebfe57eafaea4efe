"""Pool registry (factory).

At most one pool exists per unordered token pair. Pools are deployed at
addresses derived from the pair, so lookups are also answerable off-chain
with ``library.pool_for``.
"""

from __future__ import annotations

import structlog

from exchange.amm.library import pool_for, sort_tokens
from exchange.amm.pool import Pool
from exchange.amm.pricing import FixedInitialRatio, PricingPolicy
from exchange.chain.chain import Chain, Contract, external
from exchange.constants import SHARE_TOKEN_NAME, SHARE_TOKEN_SYMBOL
from exchange.errors import Forbidden, PoolExists
from exchange.models.events import PoolCreated
from exchange.models.types import ZERO_ADDRESS, normalize_address

logger = structlog.get_logger()


class Factory(Contract):
    """Creates pools and records the pair to pool mapping.

    Attributes:
        fee_to: Recipient of protocol-fee shares (zero address means off)
        fee_to_setter: Account allowed to change fee settings
        default_policy: Pricing policy given to newly created pools
        all_pools: Pool addresses in creation order
    """

    def __init__(
        self,
        chain: Chain,
        address: str,
        fee_to_setter: str,
        default_policy: PricingPolicy | None = None,
        share_name: str = SHARE_TOKEN_NAME,
        share_symbol: str = SHARE_TOKEN_SYMBOL,
    ) -> None:
        super().__init__(chain, address)
        self.fee_to = ZERO_ADDRESS
        self.fee_to_setter = normalize_address(fee_to_setter, validate=True)
        self.default_policy: PricingPolicy = default_policy or FixedInitialRatio()
        self.share_name = share_name
        self.share_symbol = share_symbol
        self.pools: dict[tuple[str, str], str] = {}
        self.all_pools: list[str] = []

    # --- Views ---

    def get_pool(self, token_a: str, token_b: str) -> str | None:
        return self.pools.get((normalize_address(token_a), normalize_address(token_b)))

    def pool_count(self) -> int:
        return len(self.all_pools)

    def pool_at(self, index: int) -> str:
        """Address of the ``index``-th created pool.

        Raises:
            IndexError: If index is out of range
        """
        if not 0 <= index < len(self.all_pools):
            raise IndexError(f"pool index {index} out of range ({len(self.all_pools)} pools)")
        return self.all_pools[index]

    # --- Entry points ---

    @external
    def create_pool(self, sender: str, token_a: str, token_b: str) -> str:
        """Deploy the pool for an unordered pair.

        Returns:
            Address of the new pool

        Raises:
            IdenticalAssets: If both tokens are the same
            ZeroAddress: If either token is the zero address
            PoolExists: If the pair already has a pool
        """
        token0, token1 = sort_tokens(token_a, token_b)
        if (token0, token1) in self.pools:
            raise PoolExists(f"pool exists for {token0}/{token1}: {self.pools[(token0, token1)]}")

        address = pool_for(self.address, token0, token1)
        self.chain.deploy_at(
            address,
            Pool,
            factory=self.address,
            token0=token0,
            token1=token1,
            policy=self.default_policy,
            name=self.share_name,
            symbol=self.share_symbol,
        )
        self.pools[(token0, token1)] = address
        self.pools[(token1, token0)] = address
        self.all_pools.append(address)
        sequence = len(self.all_pools)
        self.emit(PoolCreated(self.address, token0, token1, address, sequence))

        logger.info(
            "pool_created",
            pool=address,
            token0=token0,
            token1=token1,
            policy=self.default_policy.kind.value,
            sequence=sequence,
        )
        return address

    @external
    def set_fee_to(self, sender: str, fee_to: str) -> None:
        self._check_setter(sender)
        self.fee_to = normalize_address(fee_to, validate=True)
        logger.info("protocol_fee_recipient_set", fee_to=self.fee_to)

    @external
    def set_fee_to_setter(self, sender: str, fee_to_setter: str) -> None:
        self._check_setter(sender)
        self.fee_to_setter = normalize_address(fee_to_setter, validate=True)

    def _check_setter(self, sender: str) -> None:
        if normalize_address(sender) != self.fee_to_setter:
            raise Forbidden(f"{sender} is not the fee setter")


__all__ = ["Factory"]

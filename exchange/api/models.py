"""Pydantic request/response models for the exchange HTTP API."""

from pydantic import BaseModel, Field, model_validator

from exchange.amm.library import PoolSnapshot
from exchange.models.types import Address, Uint256


class PoolSummary(BaseModel):
    """Pool state as served by the API."""

    address: Address
    token0: Address
    token1: Address
    pricing: str = Field(description="Pricing policy name")
    reserve0: Uint256
    reserve1: Uint256
    initial_reserve0: Uint256
    initial_reserve1: Uint256
    total_supply: Uint256
    block_timestamp_last: int

    @classmethod
    def from_snapshot(cls, snapshot: PoolSnapshot) -> "PoolSummary":
        return cls(
            address=snapshot.address,
            token0=snapshot.token0,
            token1=snapshot.token1,
            pricing=snapshot.policy.kind.value,
            reserve0=snapshot.reserve0,
            reserve1=snapshot.reserve1,
            initial_reserve0=snapshot.initial_reserve0,
            initial_reserve1=snapshot.initial_reserve1,
            total_supply=snapshot.total_supply,
            block_timestamp_last=snapshot.block_timestamp_last,
        )


class QuoteRequest(BaseModel):
    """Path quote; exactly one of amount_in (exact input) or amount_out (exact output)."""

    path: list[Address] = Field(min_length=2, description="Token path, input first")
    amount_in: Uint256 | None = None
    amount_out: Uint256 | None = None

    @model_validator(mode="after")
    def exactly_one_amount(self) -> "QuoteRequest":
        if (self.amount_in is None) == (self.amount_out is None):
            raise ValueError("Provide exactly one of amount_in or amount_out")
        return self


class QuoteResponse(BaseModel):
    path: list[Address]
    amounts: list[Uint256] = Field(description="Amount at every step of the path, input first")


__all__ = ["PoolSummary", "QuoteRequest", "QuoteResponse"]

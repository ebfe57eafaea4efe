"""API endpoints for the exchange."""

import structlog
from fastapi import APIRouter, Depends, HTTPException

from exchange.amm import library
from exchange.amm.library import PoolSnapshot
from exchange.amm.pool import Pool
from exchange.api.models import PoolSummary, QuoteRequest, QuoteResponse
from exchange.deployment import Deployment, get_default_deployment
from exchange.errors import ExchangeError, PoolNotFound
from exchange.models.types import is_valid_address

logger = structlog.get_logger()

router = APIRouter()


def get_deployment() -> Deployment:
    """Dependency provider for the deployment served by the API.

    Override this in tests to inject a prepared deployment:
        app.dependency_overrides[get_deployment] = lambda: deployment
    """
    return get_default_deployment()


@router.get("/health")
async def health(deployment: Deployment = Depends(get_deployment)) -> dict[str, object]:
    """Health check endpoint."""
    return {"status": "ok", "pool_count": deployment.factory.pool_count()}


@router.get("/pools")
async def list_pools(deployment: Deployment = Depends(get_deployment)) -> list[PoolSummary]:
    """All pools in creation order."""
    factory = deployment.factory
    return [
        PoolSummary.from_snapshot(
            PoolSnapshot.of(deployment.chain.at(factory.pool_at(i), Pool))
        )
        for i in range(factory.pool_count())
    ]


@router.get("/pools/{token_a}/{token_b}")
async def get_pool(
    token_a: str,
    token_b: str,
    deployment: Deployment = Depends(get_deployment),
) -> PoolSummary:
    """State of the pool for a pair, in either token order."""
    if not (is_valid_address(token_a) and is_valid_address(token_b)):
        raise HTTPException(status_code=422, detail="Token addresses must be 0x + 40 hex chars")
    try:
        pool = library.get_pool(deployment.chain, deployment.factory.address, token_a, token_b)
    except PoolNotFound as err:
        raise HTTPException(status_code=404, detail=str(err)) from err
    except ExchangeError as err:
        raise HTTPException(status_code=400, detail=f"{type(err).__name__}: {err}") from err
    return PoolSummary.from_snapshot(PoolSnapshot.of(pool))


@router.post("/quote")
async def quote(
    request: QuoteRequest,
    deployment: Deployment = Depends(get_deployment),
) -> QuoteResponse:
    """Quote a path for an exact input or an exact output.

    Error Handling:
        - Invalid request schema: 422 Validation Error (Pydantic)
        - Missing pool on a hop: 404
        - Pricing failure (empty pool, unreachable output, ...): 400
    """
    router_contract = deployment.router
    try:
        if request.amount_in is not None:
            amounts = router_contract.get_amounts_out(request.amount_in, request.path)
        elif request.amount_out is not None:
            amounts = router_contract.get_amounts_in(request.amount_out, request.path)
        else:
            raise HTTPException(status_code=422, detail="Provide amount_in or amount_out")
    except PoolNotFound as err:
        raise HTTPException(status_code=404, detail=str(err)) from err
    except ExchangeError as err:
        logger.info("quote_rejected", path=request.path, error=type(err).__name__)
        raise HTTPException(status_code=400, detail=f"{type(err).__name__}: {err}") from err

    return QuoteResponse(path=request.path, amounts=amounts)

"""FastAPI application for the exchange.

Serves read-only views (pools, quotes) over one in-process deployment.
"""

import os

import uvicorn
from fastapi import FastAPI

from exchange import __version__
from exchange.api.endpoints import router
from exchange.log import configure_logging

# Configuration from environment variables with sensible defaults
HOST = os.environ.get("EXCHANGE_HOST", "0.0.0.0")
PORT = int(os.environ.get("EXCHANGE_PORT", "8000"))
DEBUG = os.environ.get("EXCHANGE_DEBUG", "false").lower() in ("true", "1", "yes")

app = FastAPI(
    title="AMM Exchange",
    description="Pool, registry and router views for a constant-product / fixed-ratio exchange",
    version=__version__,
)

app.include_router(router)


def run() -> None:
    """Run the exchange API server.

    Configuration via environment variables:
    - EXCHANGE_HOST: Host to bind to (default: 0.0.0.0)
    - EXCHANGE_PORT: Port to bind to (default: 8000)
    - EXCHANGE_DEBUG: Enable debug logging and reload mode (default: false)
    - EXCHANGE_*: Deployment settings, see ExchangeConfig.from_env
    """
    configure_logging(verbose=DEBUG)
    uvicorn.run(
        "exchange.api.main:app",
        host=HOST,
        port=PORT,
        reload=DEBUG,
    )


if __name__ == "__main__":
    run()

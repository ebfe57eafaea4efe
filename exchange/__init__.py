"""AMM exchange: liquidity pools, a pool registry and a swap router."""

from exchange.deployment import Deployment, deploy_exchange

__version__ = "0.1.0"
__all__ = ["Deployment", "deploy_exchange", "__version__"]

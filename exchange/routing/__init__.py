"""Liquidity and swap routing on top of the pool registry."""

from exchange.routing.router import Router

__all__ = ["Router"]

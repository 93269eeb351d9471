"""Limit order matching engine with HTTP, WebSocket and market data interfaces."""

__version__ = "0.1.0"
"""Order book tracking and arbitrage opportunity storage."""

__version__ = "0.1.0"
__all__ = ["fixtures", "metrics", "mocks", "models", "orderbook", "storage"]
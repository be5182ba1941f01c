"""Ordering domain API package."""

from ordering.api.routes import cart_router, checkout_router, order_router

__all__ = ["cart_router", "order_router", "checkout_router"]

"""Identity domain API package."""

from identity.api.routes import address_router, session_router

__all__ = ["address_router", "session_router"]

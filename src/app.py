"""Artisan Market FastAPI application.

Buyer-facing HTTP surface for the cart, saved addresses, payments, checkout
and order history. Every handler resolves the caller from the ``session``
cookie once and delegates to the operations surface, which answers with an
``{success, message, data, error}`` envelope.

Usage:
    uvicorn app:app --app-dir src --host 0.0.0.0 --port 8000 --reload
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from identity.api import address_router, session_router
from ordering.api import cart_router, checkout_router, order_router
from payments.api import payment_router
from shared.config import get_settings
from shared.database import get_database
from shared.logging import configure_logging


def create_app() -> FastAPI:
    settings = get_settings()
    configure_logging(settings.log_level, json=settings.log_json)

    application = FastAPI(
        title="Artisan Market API",
        description="Checkout and order-commit pipeline for the artisan marketplace",
    )

    application.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # -----------------------------------------------------------------------
    # Routers
    # -----------------------------------------------------------------------
    application.include_router(session_router)
    application.include_router(address_router)
    application.include_router(cart_router)
    application.include_router(payment_router)
    application.include_router(order_router)
    application.include_router(checkout_router)

    # -----------------------------------------------------------------------
    # Health / root
    # -----------------------------------------------------------------------
    @application.get("/health")
    def health():
        return JSONResponse(
            content={
                "status": "ok",
                "env": settings.env,
                "payment_gateway": settings.payment_gateway,
            }
        )

    if settings.database_url.startswith("sqlite") and settings.env != "production":
        # Local in-memory databases start empty
        get_database().setup_db()

    return application


app = create_app()

"""Payment gateway factory.

Provides get_gateway() / set_gateway() to swap implementations:
- FakeGateway for development and testing
- StripeGateway for production, selected with MARKETPLACE_PAYMENT_GATEWAY=stripe
"""

from payments.gateway.fake_adapter import FakeGateway
from payments.gateway.port import PaymentGateway
from shared.config import get_settings

_current_gateway: PaymentGateway | None = None


def _build_gateway() -> PaymentGateway:
    settings = get_settings()
    if settings.payment_gateway == "stripe":
        from payments.gateway.stripe_adapter import StripeGateway

        if not settings.stripe_api_key:
            raise RuntimeError("MARKETPLACE_STRIPE_API_KEY must be set to use the Stripe gateway")
        return StripeGateway(settings.stripe_api_key, timeout_seconds=settings.stripe_timeout_seconds)
    return FakeGateway()


def get_gateway() -> PaymentGateway:
    """Return the current payment gateway. Defaults to FakeGateway."""
    global _current_gateway
    if _current_gateway is None:
        _current_gateway = _build_gateway()
    return _current_gateway


def set_gateway(gateway: PaymentGateway) -> None:
    """Override the active payment gateway (useful for tests)."""
    global _current_gateway
    _current_gateway = gateway


def reset_gateway() -> None:
    """Reset to default gateway."""
    global _current_gateway
    _current_gateway = None

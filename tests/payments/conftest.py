import pytest


@pytest.fixture()
def stripe_client(monkeypatch):
    """Replace the Stripe SDK client with a mock; returns the mock instance."""
    from unittest.mock import MagicMock

    import stripe

    client = MagicMock(name="StripeClient")
    monkeypatch.setattr(stripe, "StripeClient", MagicMock(return_value=client))
    return client

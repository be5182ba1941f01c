from pathlib import Path

import pytest


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their directory location."""
    for item in items:
        # Get the test file path relative to the tests directory
        test_path = Path(item.fspath)

        # Mark tests based on their directory
        if "/domain/" in str(test_path):
            item.add_marker(pytest.mark.domain)
        elif "/application/" in str(test_path):
            item.add_marker(pytest.mark.application)
        elif "/integration/" in str(test_path):
            item.add_marker(pytest.mark.integration)
            # Integration tests are often slower
            if not any(m.name == "fast" for m in item.iter_markers()):
                item.add_marker(pytest.mark.slow)


@pytest.fixture(autouse=True)
def run_around_tests():
    """Give every test test settings and fresh process-wide adapters."""
    from identity.provider import reset_identity_provider
    from ordering.api.operations import reset_operations
    from payments.gateway import reset_gateway
    from shared.config import Settings, reset_settings, set_settings
    from shared.database import reset_database

    set_settings(Settings(env="test", database_url="sqlite://", payment_gateway="fake"))

    yield

    reset_operations()
    reset_gateway()
    reset_identity_provider()
    reset_database()
    reset_settings()


@pytest.fixture()
def database():
    """A fresh in-memory database with every table created."""
    from shared.database import Database, set_database

    db = Database("sqlite://")
    db.setup_db()
    set_database(db)
    yield db
    db.drop_db()


@pytest.fixture()
def gateway():
    from payments.gateway import set_gateway
    from payments.gateway.fake_adapter import FakeGateway

    fake = FakeGateway()
    set_gateway(fake)
    return fake


@pytest.fixture()
def identity_provider():
    from identity.provider import set_identity_provider
    from identity.provider.fake_adapter import FakeIdentityProvider

    provider = FakeIdentityProvider()
    set_identity_provider(provider)
    return provider


@pytest.fixture()
def buyer():
    from identity.context import RequestContext

    return RequestContext.for_buyer("buyer-ana", "ana@example.com")


@pytest.fixture()
def other_buyer():
    from identity.context import RequestContext

    return RequestContext.for_buyer("buyer-luis", "luis@example.com")


@pytest.fixture()
def anonymous():
    from identity.context import RequestContext

    return RequestContext.anonymous()


@pytest.fixture()
def catalogue(database):
    from catalogue.product.management import ProductCatalogue

    return ProductCatalogue(database)


@pytest.fixture()
def make_product(catalogue):
    """Factory: ``make_product(name="Alebrije", price="120.00", images=[...])`` returns the product id."""

    def _make(name="Alebrije de cobre", price="120.00", **kwargs):
        return catalogue.add_product(name=name, price=price, **kwargs)

    return _make


@pytest.fixture()
def address_fields():
    return {
        "recipient_name": "Ana Martínez",
        "street": "Calle Macedonio Alcalá 402",
        "city": "Oaxaca",
        "region": "Oaxaca",
        "postal_code": "68000",
        "country": "México",
        "phone": "9511234567",
    }


@pytest.fixture()
def operations(database, gateway):
    from ordering.api.operations import BuyerOperations, set_operations

    ops = BuyerOperations(database, gateway)
    set_operations(ops)
    return ops


@pytest.fixture()
def carts(database):
    from ordering.cart.repository import CartRepository

    return CartRepository(database)


@pytest.fixture()
def addresses(database):
    from identity.address.registry import AddressRegistry

    return AddressRegistry(database)


@pytest.fixture()
def authorizer(carts, gateway):
    from payments.payment.authorization import PaymentAuthorizer

    return PaymentAuthorizer(carts, gateway)


@pytest.fixture()
def client(operations, identity_provider):
    """A TestClient over every buyer-facing router, without a session cookie."""
    from fastapi import FastAPI
    from fastapi.testclient import TestClient

    from identity.api import address_router, session_router
    from ordering.api import cart_router, checkout_router, order_router
    from payments.api import payment_router

    app = FastAPI()
    for router in (session_router, address_router, cart_router, payment_router, order_router, checkout_router):
        app.include_router(router)
    return TestClient(app)


@pytest.fixture()
def buyer_client(client, identity_provider, buyer):
    """The same client, signed in as ``buyer``."""
    client.cookies.set("session", identity_provider.sign_in(buyer.buyer_id, buyer.principal.email))
    return client

"""Integration tests for Payment API endpoints via TestClient."""

from shared.config import Settings, set_settings


class TestPaymentIntentAPI:
    def test_intent_sized_from_cart(self, buyer_client, make_product):
        buyer_client.post("/cart/items", json={"product_id": make_product(price="10.00"), "quantity": 2})
        buyer_client.post("/cart/items", json={"product_id": make_product(name="Servilleta", price="5.50")})

        response = buyer_client.post("/payments/intents")

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["amount"] == 2550
        assert data["client_secret"].startswith(data["intent_id"])

    def test_body_amount_is_ignored(self, buyer_client, make_product):
        buyer_client.post("/cart/items", json={"product_id": make_product(price="10.00")})
        response = buyer_client.post("/payments/intents", json={"amount": 1})
        assert response.json()["data"]["amount"] == 1000

    def test_empty_cart(self, buyer_client, gateway):
        response = buyer_client.post("/payments/intents")
        assert response.status_code == 422
        assert response.json()["error"] == "invalid_amount"
        assert gateway.calls == []

    def test_processor_down(self, buyer_client, make_product, gateway):
        buyer_client.post("/cart/items", json={"product_id": make_product()})
        gateway.configure(unavailable=True)
        response = buyer_client.post("/payments/intents")
        assert response.status_code == 502
        assert response.json()["error"] == "upstream_error"

    def test_signed_out(self, client):
        assert client.post("/payments/intents").status_code == 401


class TestConfigureGatewayAPI:
    def test_configure_fake(self, client, gateway):
        response = client.post("/payments/gateway/configure", json={"outcome": "failed", "failure_reason": "Nope"})
        assert response.status_code == 200
        assert response.json()["outcome"] == "failed"
        assert gateway.failure_reason == "Nope"

    def test_refused_in_production(self, client):
        set_settings(Settings(env="production", database_url="sqlite://"))
        response = client.post("/payments/gateway/configure", json={"outcome": "failed"})
        assert response.status_code == 403

    def test_unknown_outcome(self, client):
        response = client.post("/payments/gateway/configure", json={"outcome": "maybe"})
        assert response.status_code == 422

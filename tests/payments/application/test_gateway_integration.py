"""Tests for gateway port/adapter integration."""

import pytest
from payments.gateway import get_gateway, reset_gateway, set_gateway
from payments.gateway.fake_adapter import FakeGateway
from payments.gateway.port import ConfirmationResult, IntentResult, IntentStatus
from payments.gateway.stripe_adapter import StripeGateway
from shared.config import Settings, set_settings
from shared.exceptions import PaymentGatewayError


def _create(gateway, amount=12000):
    return gateway.create_payment_intent(amount, "mxn", {"buyer_id": "buyer-ana"})


class TestFakeGateway:
    def test_create_intent(self):
        gateway = FakeGateway()
        intent = _create(gateway)
        assert isinstance(intent, IntentResult)
        assert intent.intent_id.startswith("pi_")
        assert intent.client_secret.startswith(f"{intent.intent_id}_secret_")
        assert intent.amount_minor_units == 12000
        assert gateway.intents[intent.intent_id]["status"] is IntentStatus.PENDING

    def test_default_confirmation_succeeds(self):
        gateway = FakeGateway()
        intent = _create(gateway)
        result = gateway.confirm_card_payment(intent.client_secret, {"type": "card"}, {"name": "Ana"})
        assert isinstance(result, ConfirmationResult)
        assert result.succeeded
        assert result.processor_reference_id == intent.intent_id
        assert result.metadata == {"buyer_id": "buyer-ana"}

    def test_configured_decline(self):
        gateway = FakeGateway()
        gateway.configure(outcome="failed", failure_reason="Insufficient funds")
        intent = _create(gateway)
        result = gateway.confirm_card_payment(intent.client_secret, {"type": "card"}, {})
        assert result.status is IntentStatus.FAILED
        assert result.failure_reason == "Insufficient funds"

    def test_configured_requires_action(self):
        gateway = FakeGateway()
        gateway.configure(outcome=IntentStatus.REQUIRES_ACTION)
        intent = _create(gateway)
        result = gateway.confirm_card_payment(intent.client_secret, {"type": "card"}, {})
        assert result.status is IntentStatus.REQUIRES_ACTION
        assert result.next_action == {"type": "use_stripe_sdk"}
        assert result.failure_reason is None

    def test_retrieve_reflects_confirmation(self):
        gateway = FakeGateway()
        intent = _create(gateway)
        assert gateway.retrieve_payment_intent(intent.intent_id).status is IntentStatus.PENDING
        gateway.confirm_card_payment(intent.client_secret, {"type": "card"}, {})
        assert gateway.retrieve_payment_intent(intent.intent_id).succeeded

    def test_authentication_then_confirm(self):
        gateway = FakeGateway()
        gateway.configure(outcome=IntentStatus.REQUIRES_ACTION)
        intent = _create(gateway)
        gateway.confirm_card_payment(intent.client_secret, {"type": "card"}, {})

        gateway.complete_authentication(intent.intent_id)
        assert gateway.retrieve_payment_intent(intent.intent_id).succeeded
        with pytest.raises(PaymentGatewayError):
            gateway.complete_authentication(intent.intent_id)

    def test_succeeded_intent_cannot_be_confirmed_again(self):
        gateway = FakeGateway()
        intent = _create(gateway)
        gateway.confirm_card_payment(intent.client_secret, {"type": "card"}, {})
        with pytest.raises(PaymentGatewayError):
            gateway.confirm_card_payment(intent.client_secret, {"type": "card"}, {})

    def test_unknown_intent(self):
        gateway = FakeGateway()
        with pytest.raises(PaymentGatewayError):
            gateway.retrieve_payment_intent("pi_missing")
        with pytest.raises(PaymentGatewayError):
            gateway.confirm_card_payment("pi_missing_secret_x", {"type": "card"}, {})

    def test_unavailable(self):
        gateway = FakeGateway()
        gateway.configure(unavailable=True)
        with pytest.raises(PaymentGatewayError):
            _create(gateway)
        assert gateway.intents == {}

    def test_id_factory(self):
        gateway = FakeGateway(id_factory=lambda: "pi_abc")
        assert _create(gateway).intent_id == "pi_abc"

    def test_call_logging(self):
        gateway = FakeGateway()
        _create(gateway, amount=2550)
        assert len(gateway.calls) == 1
        assert gateway.calls[0]["method"] == "create_payment_intent"
        assert gateway.calls[0]["amount"] == 2550
        assert gateway.calls[0]["currency"] == "mxn"


class TestGatewayFactory:
    def test_get_gateway_returns_fake_by_default(self):
        reset_gateway()
        gateway = get_gateway()
        assert isinstance(gateway, FakeGateway)

    def test_set_gateway_overrides(self):
        custom = FakeGateway()
        custom.configure(outcome="failed")
        set_gateway(custom)
        assert get_gateway().outcome is IntentStatus.FAILED

    def test_reset_gateway(self):
        custom = FakeGateway()
        custom.configure(outcome="failed")
        set_gateway(custom)
        reset_gateway()
        assert get_gateway().outcome is IntentStatus.SUCCEEDED

    def test_stripe_selected_by_settings(self, stripe_client):
        set_settings(Settings(env="test", payment_gateway="stripe", stripe_api_key="sk_test_123"))
        reset_gateway()
        gateway = get_gateway()
        assert isinstance(gateway, StripeGateway)
        assert gateway.client is stripe_client

    def test_stripe_without_key_refuses_to_start(self):
        set_settings(Settings(env="test", payment_gateway="stripe", stripe_api_key=""))
        reset_gateway()
        with pytest.raises(RuntimeError):
            get_gateway()

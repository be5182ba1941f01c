"""Tests for the Checkout Session Controller."""

import pytest
from sqlalchemy import func, select

from ordering.checkout.controller import CheckoutController
from ordering.checkout.session import CheckoutSessionStore, CheckoutStep
from ordering.order.order import Order
from payments.gateway.port import IntentStatus
from shared.exceptions import MissingPrecondition, OrderDetailFailed, PaymentGatewayError, ValidationError

CARD = {"type": "card", "card": {"token": "tok_visa"}}
BILLING = {"name": "Ana Martínez", "email": "ana@example.com"}


@pytest.fixture()
def controller(carts, addresses, authorizer, coordinator):
    return CheckoutController(carts, addresses, authorizer, coordinator, CheckoutSessionStore())


@pytest.fixture()
def filled_cart(buyer, carts, make_product):
    carts.add_item(buyer, make_product(name="Alebrije de cobre", price="120.00"), 1)


def _order_count(database):
    with database.session() as session:
        return session.scalar(select(func.count()).select_from(Order))


class TestStart:
    def test_signed_out_buyer_is_sent_to_sign_in(self, controller, anonymous):
        start = controller.start(anonymous)
        assert start.redirect_to == "/login?redirect=/checkout"
        assert start.session is None

    def test_empty_cart_is_sent_back_to_cart(self, controller, buyer):
        start = controller.start(buyer)
        assert start.redirect_to == "/cart"

    def test_session_at_shipping(self, controller, buyer, filled_cart):
        start = controller.start(buyer)
        assert start.redirect_to is None
        assert start.session.step is CheckoutStep.SHIPPING
        assert str(start.session.total) == "120.00"
        assert [line.name for line in start.session.lines] == ["Alebrije de cobre"]
        assert controller.current(buyer) is start.session


class TestShipping:
    def test_submit_shipping_saves_address_and_prepares_payment(
        self, controller, buyer, filled_cart, address_fields, gateway
    ):
        controller.start(buyer)
        session = controller.submit_shipping(buyer, address_fields)

        assert session.step is CheckoutStep.PAYMENT
        assert session.address_saved
        assert session.address_id is not None
        assert session.amount_minor_units == 12000
        assert session.client_secret.startswith(session.intent_id)
        assert [call["method"] for call in gateway.calls] == ["create_payment_intent"]
        assert gateway.calls[0]["currency"] == "mxn"

    def test_invalid_address_stays_at_shipping(self, controller, buyer, filled_cart, address_fields, gateway):
        controller.start(buyer)
        with pytest.raises(ValidationError):
            controller.submit_shipping(buyer, {**address_fields, "phone": "123"})
        assert controller.current(buyer).step is CheckoutStep.SHIPPING
        assert gateway.calls == []

    def test_shipping_requires_started_checkout(self, controller, buyer, address_fields):
        with pytest.raises(MissingPrecondition):
            controller.submit_shipping(buyer, address_fields)

    def test_processor_outage_keeps_saved_address(self, controller, buyer, filled_cart, address_fields, gateway):
        controller.start(buyer)
        gateway.configure(unavailable=True)
        with pytest.raises(PaymentGatewayError):
            controller.submit_shipping(buyer, address_fields)

        session = controller.current(buyer)
        assert session.address_saved
        assert not session.has_intent

        gateway.configure()
        assert controller.request_intent(buyer).amount_minor_units == 12000


class TestPayment:
    def test_payment_requires_saved_address(self, controller, buyer, filled_cart):
        controller.start(buyer)
        with pytest.raises(MissingPrecondition):
            controller.submit_payment(buyer, CARD, BILLING)

    def test_successful_payment_commits_and_clears_cart(
        self, controller, buyer, filled_cart, address_fields, carts, database
    ):
        controller.start(buyer)
        controller.submit_shipping(buyer, address_fields)
        session = controller.submit_payment(buyer, CARD, BILLING)

        assert session.step is CheckoutStep.CONFIRMED
        assert session.order_id is not None
        assert session.payment_reference_id == session.intent_id
        assert carts.lines_for(buyer.buyer_id) == []
        assert _order_count(database) == 1

    def test_declined_payment_allows_resubmission(
        self, controller, buyer, filled_cart, address_fields, gateway, database
    ):
        controller.start(buyer)
        controller.submit_shipping(buyer, address_fields)

        gateway.configure(outcome=IntentStatus.FAILED, failure_reason="Insufficient funds")
        declined = controller.submit_payment(buyer, CARD, BILLING)
        assert declined.step is CheckoutStep.PAYMENT
        assert declined.failure_reason == "Insufficient funds"
        assert _order_count(database) == 0

        gateway.configure(outcome=IntentStatus.SUCCEEDED)
        confirmed = controller.submit_payment(buyer, CARD, BILLING)
        assert confirmed.step is CheckoutStep.CONFIRMED
        assert confirmed.failure_reason is None

    def test_requires_action_is_not_a_failure(self, controller, buyer, filled_cart, address_fields, gateway, carts):
        controller.start(buyer)
        controller.submit_shipping(buyer, address_fields)

        gateway.configure(outcome=IntentStatus.REQUIRES_ACTION)
        session = controller.submit_payment(buyer, CARD, BILLING)

        assert session.step is CheckoutStep.PAYMENT
        assert session.next_action == {"type": "use_stripe_sdk"}
        assert session.failure_reason is None
        assert len(carts.lines_for(buyer.buyer_id)) == 1

    def test_payment_resumes_after_authentication(
        self, controller, buyer, filled_cart, address_fields, gateway, database
    ):
        controller.start(buyer)
        controller.submit_shipping(buyer, address_fields)
        gateway.configure(outcome=IntentStatus.REQUIRES_ACTION)
        session = controller.submit_payment(buyer, CARD, BILLING)
        intent_id = session.intent_id

        # Buyer resubmits before finishing with their bank
        again = controller.submit_payment(buyer, CARD, BILLING)
        assert again.step is CheckoutStep.PAYMENT
        assert again.next_action == {"type": "use_stripe_sdk"}
        confirms = [call for call in gateway.calls if call["method"] == "confirm_card_payment"]
        assert len(confirms) == 1

        # Re-entering the address keeps the pending intent
        assert controller.submit_shipping(buyer, address_fields).intent_id == intent_id
        assert list(gateway.intents) == [intent_id]

        gateway.complete_authentication(intent_id)
        confirmed = controller.submit_payment(buyer, CARD, BILLING)

        assert confirmed.step is CheckoutStep.CONFIRMED
        assert confirmed.payment_reference_id == intent_id
        assert _order_count(database) == 1
        confirms = [call for call in gateway.calls if call["method"] == "confirm_card_payment"]
        assert len(confirms) == 1

    def test_failed_authentication_can_be_retried(self, controller, buyer, filled_cart, address_fields, gateway):
        controller.start(buyer)
        controller.submit_shipping(buyer, address_fields)
        gateway.configure(outcome=IntentStatus.REQUIRES_ACTION)
        session = controller.submit_payment(buyer, CARD, BILLING)

        gateway.complete_authentication(session.intent_id, IntentStatus.FAILED)
        gateway.configure(outcome=IntentStatus.SUCCEEDED)
        assert controller.submit_payment(buyer, CARD, BILLING).step is CheckoutStep.CONFIRMED

    def test_reshipping_replaces_unconfirmed_intent(self, controller, buyer, filled_cart, address_fields, gateway):
        controller.start(buyer)
        first = controller.submit_shipping(buyer, address_fields).intent_id
        second = controller.submit_shipping(buyer, address_fields).intent_id
        assert first != second
        assert len(gateway.intents) == 2

    def test_commit_failure_is_paid_unrecorded(
        self, controller, buyer, filled_cart, address_fields, coordinator, monkeypatch, carts
    ):
        controller.start(buyer)
        controller.submit_shipping(buyer, address_fields)

        def failing_commit(*args, **kwargs):
            raise OrderDetailFailed("Contact support with reference pi_x", payment_reference_id="pi_x")

        monkeypatch.setattr(coordinator, "commit", failing_commit)
        session = controller.submit_payment(buyer, CARD, BILLING)

        assert session.step is CheckoutStep.PAID_UNRECORDED
        assert "pi_x" in session.message
        assert len(carts.lines_for(buyer.buyer_id)) == 1

        with pytest.raises(MissingPrecondition):
            controller.submit_payment(buyer, CARD, BILLING)

    def test_precondition_failure_after_capture_is_paid_unrecorded(
        self, controller, buyer, filled_cart, address_fields, gateway, addresses
    ):
        controller.start(buyer)
        session = controller.submit_shipping(buyer, address_fields)
        addresses.delete(buyer.buyer_id, session.address_id)

        session = controller.submit_payment(buyer, CARD, BILLING)
        assert session.step is CheckoutStep.PAID_UNRECORDED
        assert session.intent_id in session.message


class TestAbandon:
    def test_abandon_before_commit(self, controller, buyer, filled_cart, address_fields):
        controller.start(buyer)
        controller.submit_shipping(buyer, address_fields)
        controller.abandon(buyer)
        assert controller.current(buyer) is None

    def test_abandon_refused_once_confirmed(self, controller, buyer, filled_cart, address_fields):
        controller.start(buyer)
        controller.submit_shipping(buyer, address_fields)
        controller.submit_payment(buyer, CARD, BILLING)
        with pytest.raises(MissingPrecondition):
            controller.abandon(buyer)

    def test_abandon_without_session(self, controller, buyer):
        controller.abandon(buyer)
        assert controller.current(buyer) is None

    def test_finished_checkout_is_evicted(
        self, buyer, filled_cart, address_fields, carts, addresses, authorizer, coordinator
    ):
        now = [0.0]
        sessions = CheckoutSessionStore(retention_seconds=60, clock=lambda: now[0])
        controller = CheckoutController(carts, addresses, authorizer, coordinator, sessions)
        controller.start(buyer)
        controller.submit_shipping(buyer, address_fields)
        controller.submit_payment(buyer, CARD, BILLING)

        assert controller.current(buyer).step is CheckoutStep.CONFIRMED
        now[0] = 61.0
        assert controller.current(buyer) is None
        assert len(sessions) == 0

"""Stripe payment processor adapter.

Uses the stripe-python SDK to create, confirm and look up PaymentIntents.
Card declines come back as a FAILED result; every other SDK error becomes a
``PaymentGatewayError``. The intent id doubles as the processor reference id
stored on orders.
"""

import stripe
import structlog

from payments.gateway.port import ConfirmationResult, IntentResult, IntentStatus, PaymentGateway
from shared.exceptions import PaymentGatewayError

logger = structlog.get_logger(__name__)

_STATUS_MAP = {
    "succeeded": IntentStatus.SUCCEEDED,
    "requires_action": IntentStatus.REQUIRES_ACTION,
    # Stripe returns the intent to requires_payment_method after a decline
    "requires_payment_method": IntentStatus.FAILED,
    "canceled": IntentStatus.FAILED,
}


def intent_id_from_secret(client_secret: str) -> str:
    return client_secret.split("_secret_", 1)[0]


class StripeGateway(PaymentGateway):
    """Production Stripe processor adapter."""

    def __init__(self, api_key: str, timeout_seconds: float = 80, max_network_retries: int = 2) -> None:
        self.client = stripe.StripeClient(
            api_key,
            max_network_retries=max_network_retries,
            http_client=stripe.HTTPXClient(timeout=timeout_seconds),
        )

    def create_payment_intent(self, amount_minor_units: int, currency: str, metadata: dict) -> IntentResult:
        try:
            intent = self.client.v1.payment_intents.create(
                params={
                    "amount": amount_minor_units,
                    "currency": currency,
                    "metadata": metadata,
                    "automatic_payment_methods": {"enabled": True},
                }
            )
        except stripe.StripeError as exc:
            logger.error("Stripe intent creation failed", error=str(exc), amount=amount_minor_units)
            raise PaymentGatewayError(f"Payment processor error: {exc.user_message or exc}") from exc

        return IntentResult(
            intent_id=intent.id,
            client_secret=intent.client_secret,
            amount_minor_units=intent.amount,
            currency=intent.currency,
        )

    def confirm_card_payment(
        self,
        client_secret: str,
        payment_method: dict,
        billing_details: dict,
    ) -> ConfirmationResult:
        intent_id = intent_id_from_secret(client_secret)
        if "id" in payment_method:
            params = {"payment_method": payment_method["id"]}
        else:
            params = {"payment_method_data": {**payment_method, "billing_details": billing_details}}

        try:
            intent = self.client.v1.payment_intents.confirm(intent_id, params=params)
        except stripe.CardError as exc:
            logger.info("Stripe card declined", intent_id=intent_id, code=exc.code)
            return ConfirmationResult(
                status=IntentStatus.FAILED,
                processor_reference_id=intent_id,
                failure_reason=exc.user_message or str(exc),
            )
        except stripe.StripeError as exc:
            logger.error("Stripe confirmation failed", intent_id=intent_id, error=str(exc))
            raise PaymentGatewayError(f"Payment processor error: {exc.user_message or exc}") from exc

        return _to_result(intent)

    def retrieve_payment_intent(self, intent_id: str) -> ConfirmationResult:
        try:
            intent = self.client.v1.payment_intents.retrieve(intent_id)
        except stripe.StripeError as exc:
            logger.error("Stripe intent lookup failed", intent_id=intent_id, error=str(exc))
            raise PaymentGatewayError(f"Payment processor error: {exc.user_message or exc}") from exc
        return _to_result(intent)


def _to_result(intent) -> ConfirmationResult:
    status = _STATUS_MAP.get(intent.status, IntentStatus.PENDING)
    failure_reason = None
    if status is IntentStatus.FAILED and intent.last_payment_error is not None:
        failure_reason = intent.last_payment_error.message
    next_action = intent.next_action.to_dict() if intent.next_action is not None else None
    return ConfirmationResult(
        status=status,
        processor_reference_id=intent.id,
        amount_minor_units=intent.amount,
        failure_reason=failure_reason,
        next_action=next_action,
        metadata=dict(intent.metadata or {}),
    )

"""Configurable fake payment processor for development and testing.

This adapter simulates a real processor without any external calls. It keeps
the intents it created in memory and can be configured at runtime to approve,
decline or ask for extra authentication, making it useful for:
- Automated tests with predictable outcomes
- Development without real processor credentials

Follows the same pattern as Stripe's test mode (test API keys + test card
numbers) but simplified.
"""

from collections.abc import Callable
from uuid import uuid4

from payments.gateway.port import ConfirmationResult, IntentResult, IntentStatus, PaymentGateway
from shared.exceptions import PaymentGatewayError


def _intent_id() -> str:
    return f"pi_{uuid4().hex[:24]}"


class FakeGateway(PaymentGateway):
    """Configurable fake payment processor."""

    def __init__(self, id_factory: Callable[[], str] = _intent_id) -> None:
        self.id_factory = id_factory
        self.outcome: IntentStatus = IntentStatus.SUCCEEDED
        self.failure_reason: str = "Your card was declined."
        self.unavailable: bool = False
        self.intents: dict[str, dict] = {}
        self.calls: list[dict] = []

    def configure(
        self,
        outcome: IntentStatus | str = IntentStatus.SUCCEEDED,
        failure_reason: str = "Your card was declined.",
        unavailable: bool = False,
    ) -> None:
        """Configure processor behaviour at runtime."""
        self.outcome = IntentStatus(outcome)
        self.failure_reason = failure_reason
        self.unavailable = unavailable

    def create_payment_intent(self, amount_minor_units: int, currency: str, metadata: dict) -> IntentResult:
        self.calls.append(
            {
                "method": "create_payment_intent",
                "amount": amount_minor_units,
                "currency": currency,
                "metadata": dict(metadata),
            }
        )
        self._check_available()

        intent_id = self.id_factory()
        client_secret = f"{intent_id}_secret_{uuid4().hex[:16]}"
        self.intents[intent_id] = {
            "amount": amount_minor_units,
            "currency": currency,
            "metadata": dict(metadata),
            "client_secret": client_secret,
            "status": IntentStatus.PENDING,
        }
        return IntentResult(
            intent_id=intent_id,
            client_secret=client_secret,
            amount_minor_units=amount_minor_units,
            currency=currency,
        )

    def confirm_card_payment(
        self,
        client_secret: str,
        payment_method: dict,
        billing_details: dict,
    ) -> ConfirmationResult:
        self.calls.append(
            {
                "method": "confirm_card_payment",
                "client_secret": client_secret,
                "payment_method": payment_method,
                "billing_details": billing_details,
            }
        )
        self._check_available()

        intent_id = client_secret.split("_secret_", 1)[0]
        intent = self.intents.get(intent_id)
        if intent is None or intent["client_secret"] != client_secret:
            raise PaymentGatewayError("No such payment intent")
        if intent["status"] is IntentStatus.SUCCEEDED:
            raise PaymentGatewayError("This PaymentIntent has already succeeded and cannot be confirmed again")

        intent["status"] = self.outcome
        return self._result(intent_id)

    def retrieve_payment_intent(self, intent_id: str) -> ConfirmationResult:
        self.calls.append({"method": "retrieve_payment_intent", "intent_id": intent_id})
        self._check_available()

        if intent_id not in self.intents:
            raise PaymentGatewayError("No such payment intent")
        return self._result(intent_id)

    def complete_authentication(self, intent_id: str, outcome: IntentStatus = IntentStatus.SUCCEEDED) -> None:
        """Settle an intent waiting on extra authentication, as the buyer's bank would."""
        intent = self.intents[intent_id]
        if intent["status"] is not IntentStatus.REQUIRES_ACTION:
            raise PaymentGatewayError("Payment intent is not awaiting authentication")
        intent["status"] = IntentStatus(outcome)

    def _result(self, intent_id: str) -> ConfirmationResult:
        intent = self.intents[intent_id]
        status = intent["status"]
        return ConfirmationResult(
            status=status,
            processor_reference_id=intent_id,
            amount_minor_units=intent["amount"],
            failure_reason=self.failure_reason if status is IntentStatus.FAILED else None,
            next_action={"type": "use_stripe_sdk"} if status is IntentStatus.REQUIRES_ACTION else None,
            metadata=intent["metadata"],
        )

    def _check_available(self) -> None:
        if self.unavailable:
            raise PaymentGatewayError("Payment processor unavailable")

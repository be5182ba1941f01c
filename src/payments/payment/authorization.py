"""Payment authorization: sizing intents from the live cart and confirming them.

The amount charged is always derived server-side from the buyer's current
cart; nothing the client sends can change it.
"""

import structlog

from identity.context import RequestContext
from ordering.cart.repository import CartRepository
from payments.gateway import get_gateway
from payments.gateway.port import ConfirmationResult, IntentResult, PaymentGateway
from shared.config import get_settings
from shared.exceptions import InvalidAmount, ValidationError
from shared.money import to_minor_units

logger = structlog.get_logger(__name__)


class PaymentAuthorizer:
    def __init__(self, carts: CartRepository, gateway: PaymentGateway | None = None) -> None:
        self.carts = carts
        self._gateway = gateway

    @property
    def gateway(self) -> PaymentGateway:
        return self._gateway or get_gateway()

    def create_intent(self, ctx: RequestContext) -> IntentResult:
        """Create a processor intent for the caller's cart total.

        Raises ``InvalidAmount`` without calling the processor when the cart
        total is not positive.
        """
        buyer_id = ctx.buyer_id
        amount = to_minor_units(self.carts.cart_total(buyer_id))
        if amount <= 0:
            raise InvalidAmount({"amount": ["Cart total must be greater than zero"]})

        currency = get_settings().currency
        intent = self.gateway.create_payment_intent(amount, currency, {"buyer_id": buyer_id})
        logger.info("Payment intent created", buyer_id=buyer_id, intent_id=intent.intent_id, amount=amount)
        return intent

    def confirm(self, client_secret: str, payment_method: dict, billing_details: dict) -> ConfirmationResult:
        if not client_secret:
            raise ValidationError({"client_secret": ["Client secret is required"]})

        result = self.gateway.confirm_card_payment(client_secret, payment_method, billing_details)
        logger.info(
            "Payment confirmation returned",
            intent_id=result.processor_reference_id,
            status=result.status.value,
        )
        return result

    def status_of(self, reference_id: str) -> ConfirmationResult:
        return self.gateway.retrieve_payment_intent(reference_id)

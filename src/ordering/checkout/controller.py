"""Checkout Session Controller: drives a buyer from cart to committed order.

Flow:
    1. start             → SHIPPING (or a redirect when signed out / cart empty)
    2. submit_shipping   → address saved, PAYMENT, intent created for the live cart total
    3. submit_payment    → processor confirmation
       3a. succeeded        → COMMITTING → coordinator commit → cart cleared → CONFIRMED
       3b. failed           → stays at PAYMENT with the reason; resubmit without re-entering the address
       3c. requires_action  → stays at PAYMENT with the processor's next action; once the
                              buyer authenticates, resubmitting commits the same intent
       3d. commit failure   → PAID_UNRECORDED with a support message; never retried
    4. abandon           → allowed until COMMITTING

Once the coordinator has been invoked the attempt runs to completion or to an
explicit failure; nothing in this module cancels it.
"""

from dataclasses import dataclass
from decimal import Decimal
from urllib.parse import quote

import structlog

from identity.address.address import AddressFields
from identity.address.registry import AddressRegistry
from identity.context import RequestContext
from ordering.cart.repository import CartRepository
from ordering.checkout.session import LOCKED_STEPS, CheckoutSession, CheckoutSessionStore, CheckoutStep
from ordering.order.coordinator import OrderCommitCoordinator
from payments.gateway.port import IntentStatus
from payments.payment.authorization import PaymentAuthorizer
from shared.config import get_settings
from shared.exceptions import DataStoreError, MarketplaceError, MissingPrecondition, OrderCommitError

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class CheckoutStart:
    """Either a session to render or a path to send the buyer to."""

    session: CheckoutSession | None = None
    redirect_to: str | None = None


class CheckoutController:
    def __init__(
        self,
        carts: CartRepository,
        addresses: AddressRegistry,
        payments: PaymentAuthorizer,
        coordinator: OrderCommitCoordinator,
        sessions: CheckoutSessionStore,
    ) -> None:
        self.carts = carts
        self.addresses = addresses
        self.payments = payments
        self.coordinator = coordinator
        self.sessions = sessions

    def start(self, ctx: RequestContext) -> CheckoutStart:
        settings = get_settings()
        if not ctx.is_authenticated:
            return CheckoutStart(redirect_to=f"{settings.sign_in_path}?redirect={quote(settings.checkout_path)}")

        buyer_id = ctx.buyer_id
        existing = self.sessions.get(buyer_id)
        if existing is not None and existing.step is CheckoutStep.COMMITTING:
            return CheckoutStart(session=existing)

        lines = [line for line in self.carts.lines_for(buyer_id) if line.available]
        if not lines:
            return CheckoutStart(redirect_to=settings.cart_path)

        session = CheckoutSession(
            buyer_id=buyer_id,
            lines=lines,
            total=sum((line.subtotal for line in lines), Decimal("0")),
        )
        self.sessions.put(session)
        logger.info("Checkout started", buyer_id=buyer_id, total=str(session.total))
        return CheckoutStart(session=session)

    def current(self, ctx: RequestContext) -> CheckoutSession | None:
        return self.sessions.get(ctx.buyer_id)

    def submit_shipping(self, ctx: RequestContext, fields: AddressFields | dict) -> CheckoutSession:
        session = self._require_open(ctx)

        session.address_id = self.addresses.save(ctx.buyer_id, fields)
        session.address_saved = True
        session.step = CheckoutStep.PAYMENT
        logger.info("Checkout shipping saved", buyer_id=ctx.buyer_id, address_id=session.address_id)

        return self.request_intent(ctx)

    def request_intent(self, ctx: RequestContext) -> CheckoutSession:
        """Create a payment intent sized to the cart as it is right now.

        An intent the processor has already authorised, or that is waiting on
        the buyer's bank, is kept rather than replaced.
        """
        session = self._require_open(ctx)
        if not session.address_saved:
            raise MissingPrecondition({"address": ["Save a shipping address first"]})

        if session.intent_id is not None:
            status = self.payments.status_of(session.intent_id)
            if status.status in (IntentStatus.SUCCEEDED, IntentStatus.REQUIRES_ACTION):
                logger.info("Checkout intent kept", buyer_id=ctx.buyer_id, status=status.status.value)
                return session

        snapshot = self.carts.snapshot(ctx.buyer_id)
        intent = self.payments.create_intent(ctx)

        session.intent_id = intent.intent_id
        session.client_secret = intent.client_secret
        session.amount_minor_units = intent.amount_minor_units
        session.snapshot = snapshot
        session.lines = [line for line in self.carts.lines_for(ctx.buyer_id) if line.available]
        session.total = snapshot.total
        session.failure_reason = None
        session.next_action = None
        return session

    def submit_payment(self, ctx: RequestContext, payment_method: dict, billing_details: dict) -> CheckoutSession:
        session = self._require_open(ctx)
        if session.step is not CheckoutStep.PAYMENT or not session.address_saved:
            raise MissingPrecondition({"address": ["Save a shipping address first"]})
        if not session.has_intent or session.snapshot is None:
            raise MissingPrecondition({"payment": ["No payment has been prepared for this checkout"]})

        # A succeeded intent cannot be confirmed again; one awaiting authentication
        # is finished by the buyer with the processor, not by another confirm.
        current = self.payments.status_of(session.intent_id)
        if current.status is IntentStatus.SUCCEEDED:
            result = current
        elif current.status is IntentStatus.REQUIRES_ACTION:
            session.next_action = current.next_action
            session.failure_reason = None
            return session
        else:
            result = self.payments.confirm(session.client_secret, payment_method, billing_details)

        if result.status is IntentStatus.REQUIRES_ACTION:
            session.next_action = result.next_action
            session.failure_reason = None
            return session

        if result.status is not IntentStatus.SUCCEEDED:
            session.failure_reason = result.failure_reason or "The payment could not be completed."
            session.next_action = None
            logger.info("Checkout payment declined", buyer_id=ctx.buyer_id, reason=session.failure_reason)
            return session

        session.step = CheckoutStep.COMMITTING
        session.payment_reference_id = result.processor_reference_id
        session.failure_reason = None
        session.next_action = None
        return self._commit(ctx, session)

    def abandon(self, ctx: RequestContext) -> None:
        session = self.sessions.get(ctx.buyer_id)
        if session is None:
            return
        if session.step in LOCKED_STEPS:
            raise MissingPrecondition({"checkout": ["This checkout can no longer be abandoned"]})
        self.sessions.discard(ctx.buyer_id)
        logger.info("Checkout abandoned", buyer_id=ctx.buyer_id, step=session.step.value)

    def _commit(self, ctx: RequestContext, session: CheckoutSession) -> CheckoutSession:
        reference = session.payment_reference_id
        try:
            result = self.coordinator.commit(
                ctx,
                session.snapshot,
                session.address_id,
                reference,
                session.amount_minor_units,
            )
        except OrderCommitError as exc:
            session.step = CheckoutStep.PAID_UNRECORDED
            session.message = exc.message
            return session
        except MarketplaceError as exc:
            # Payment was captured; any failure from here on needs a human
            logger.error(
                "Paid but unrecorded",
                buyer_id=ctx.buyer_id,
                payment_reference_id=reference,
                error=exc.message,
                needs_reconciliation=True,
            )
            session.step = CheckoutStep.PAID_UNRECORDED
            session.message = (
                f"Your payment was received but your order could not be saved. "
                f"Please contact {get_settings().support_contact} with payment reference {reference}."
            )
            return session

        try:
            self.carts.clear(ctx)
        except DataStoreError:
            logger.warning("Cart not cleared after commit", buyer_id=ctx.buyer_id, order_id=result.order_id)

        session.step = CheckoutStep.CONFIRMED
        session.order_id = result.order_id
        session.message = "Your order has been placed."
        logger.info("Checkout confirmed", buyer_id=ctx.buyer_id, order_id=result.order_id)
        return session

    def _require_open(self, ctx: RequestContext) -> CheckoutSession:
        session = self.sessions.get(ctx.buyer_id)
        if session is None:
            raise MissingPrecondition({"checkout": ["Checkout has not been started"]})
        if session.step in LOCKED_STEPS:
            raise MissingPrecondition({"checkout": ["This checkout is already being completed"]})
        return session

"""Order Commit Coordinator: turns a captured payment into a durable order.

Each call to ``commit`` is one attempt that moves through

    AWAITING_PRECONDITIONS -> COMMITTING -> COMMITTED
                 \\______________\\________-> FAILED

Preconditions are checked before anything is written. The order header and
its lines are written in one transaction, so a failed line insert never leaves
a header behind. The payment record is written afterwards in its own
transaction and is best effort: the order stands without it.

The processor reference id is the idempotency key. A second commit for a
reference that already produced an order returns that order instead of
writing another one, even after the cart has been emptied. The unique
constraint on ``orders.payment_reference_id`` settles concurrent attempts.

Failures after payment capture are never retried here. They are logged with
the reference id for manual reconciliation and raised as ``OrderCommitError``
subclasses so the buyer can be pointed at support.
"""

from dataclasses import dataclass
from enum import Enum

import structlog
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from identity.address.registry import AddressRegistry
from identity.context import RequestContext
from ordering.cart.cart import CartSnapshot
from ordering.order.order import Order, OrderLine, OrderStatus
from payments.payment.authorization import PaymentAuthorizer
from payments.payment.record import EXTERNAL_PROCESSOR, PaymentRecord, PaymentRecordStatus
from shared.config import get_settings
from shared.database import Database, store_errors
from shared.exceptions import (
    MissingPrecondition,
    OrderCommitError,
    OrderCreateFailed,
    OrderDetailFailed,
)
from shared.money import from_minor_units, to_minor_units

logger = structlog.get_logger(__name__)


class CommitState(Enum):
    AWAITING_PRECONDITIONS = "awaiting_preconditions"
    COMMITTING = "committing"
    COMMITTED = "committed"
    FAILED = "failed"


_TRANSITIONS = {
    CommitState.AWAITING_PRECONDITIONS: {CommitState.COMMITTING, CommitState.COMMITTED, CommitState.FAILED},
    CommitState.COMMITTING: {CommitState.COMMITTED, CommitState.FAILED},
    CommitState.COMMITTED: set(),
    CommitState.FAILED: set(),
}


class IllegalTransition(RuntimeError):
    pass


class CommitAttempt:
    """State of a single commit call."""

    def __init__(self, payment_reference_id: str) -> None:
        self.payment_reference_id = payment_reference_id
        self.state = CommitState.AWAITING_PRECONDITIONS

    def advance(self, target: CommitState) -> None:
        if target not in _TRANSITIONS[self.state]:
            raise IllegalTransition(f"Cannot move a commit from {self.state.value} to {target.value}")
        logger.debug(
            "Commit attempt transition",
            payment_reference_id=self.payment_reference_id,
            source=self.state.value,
            target=target.value,
        )
        self.state = target


@dataclass(frozen=True)
class CommitResult:
    order_id: str
    state: CommitState
    payment_recorded: bool
    duplicate: bool = False


class OrderCommitCoordinator:
    def __init__(self, database: Database, addresses: AddressRegistry, payments: PaymentAuthorizer) -> None:
        self.database = database
        self.addresses = addresses
        self.payments = payments

    def commit(
        self,
        ctx: RequestContext,
        snapshot: CartSnapshot,
        address_id: str,
        payment_reference_id: str,
        amount_minor_units: int,
    ) -> CommitResult:
        buyer_id = ctx.buyer_id
        attempt = CommitAttempt(payment_reference_id)

        try:
            existing = self.find_existing(buyer_id, payment_reference_id)
            if existing is not None:
                attempt.advance(CommitState.COMMITTED)
                logger.info(
                    "Duplicate commit resolved to existing order",
                    buyer_id=buyer_id,
                    order_id=existing.order_id,
                    payment_reference_id=payment_reference_id,
                )
                return existing

            self.check_preconditions(buyer_id, snapshot, address_id, payment_reference_id, amount_minor_units)
            attempt.advance(CommitState.COMMITTING)

            order_id = self._write_order(buyer_id, snapshot, address_id, payment_reference_id, amount_minor_units)
            if order_id is None:
                concurrent = self.find_existing(buyer_id, payment_reference_id)
                if concurrent is None:
                    raise self._unrecorded(
                        OrderCreateFailed, payment_reference_id, "the order row conflicted but could not be read back"
                    )
                attempt.advance(CommitState.COMMITTED)
                return concurrent
        except Exception:
            if attempt.state is not CommitState.COMMITTED:
                attempt.advance(CommitState.FAILED)
            raise

        payment_recorded = self._record_payment(order_id, payment_reference_id, amount_minor_units)
        attempt.advance(CommitState.COMMITTED)
        logger.info(
            "Order committed",
            buyer_id=buyer_id,
            order_id=order_id,
            payment_reference_id=payment_reference_id,
            payment_recorded=payment_recorded,
        )
        return CommitResult(order_id=order_id, state=attempt.state, payment_recorded=payment_recorded)

    def find_existing(self, buyer_id: str, payment_reference_id: str) -> CommitResult | None:
        """The order already committed for this payment reference, if any."""
        if not payment_reference_id:
            return None

        with store_errors("look up the payment reference"), self.database.session() as session:
            record = session.scalars(
                select(PaymentRecord).where(PaymentRecord.processor_reference_id == payment_reference_id)
            ).first()
            if record is not None:
                order = session.get(Order, record.order_id)
            else:
                order = session.scalars(select(Order).where(Order.payment_reference_id == payment_reference_id)).first()

        if order is None:
            return None
        if order.buyer_id != buyer_id:
            raise MissingPrecondition({"payment_reference_id": ["Payment reference does not belong to this buyer"]})
        return CommitResult(
            order_id=order.id,
            state=CommitState.COMMITTED,
            payment_recorded=record is not None,
            duplicate=True,
        )

    def check_preconditions(
        self,
        buyer_id: str,
        snapshot: CartSnapshot,
        address_id: str,
        payment_reference_id: str,
        amount_minor_units: int,
    ) -> None:
        """Raise ``MissingPrecondition`` unless everything needed to commit is in place. Writes nothing."""
        if snapshot.is_empty:
            raise MissingPrecondition({"cart": ["Cart is empty"]})
        if any(line.quantity < 1 for line in snapshot.lines):
            raise MissingPrecondition({"cart": ["Every cart line needs a quantity of at least 1"]})
        if not address_id:
            raise MissingPrecondition({"address_id": ["A shipping address is required"]})
        if not self.addresses.owns(buyer_id, address_id):
            raise MissingPrecondition({"address_id": ["Shipping address not found"]})
        if not payment_reference_id:
            raise MissingPrecondition({"payment_reference_id": ["A payment reference is required"]})

        if amount_minor_units is None or amount_minor_units <= 0:
            raise MissingPrecondition({"amount": ["Amount must be greater than zero"]})
        expected = to_minor_units(snapshot.total)
        if amount_minor_units != expected:
            raise MissingPrecondition({"amount": [f"Amount {amount_minor_units} does not match cart total {expected}"]})

        status = self.payments.status_of(payment_reference_id)
        if not status.succeeded:
            raise MissingPrecondition({"payment_reference_id": [f"Payment has not succeeded ({status.status.value})"]})
        if status.amount_minor_units is not None and status.amount_minor_units != amount_minor_units:
            raise MissingPrecondition({"amount": ["Amount does not match the authorized payment"]})
        intent_buyer = status.metadata.get("buyer_id")
        if intent_buyer is not None and intent_buyer != buyer_id:
            raise MissingPrecondition({"payment_reference_id": ["Payment reference does not belong to this buyer"]})

    def _write_order(
        self,
        buyer_id: str,
        snapshot: CartSnapshot,
        address_id: str,
        payment_reference_id: str,
        amount_minor_units: int,
    ) -> str | None:
        """Insert header and lines atomically. Returns None when a concurrent commit won the reference."""
        header_written = False
        try:
            with self.database.transaction() as session:
                order = Order(
                    buyer_id=buyer_id,
                    shipping_address_id=address_id,
                    total=from_minor_units(amount_minor_units),
                    status=OrderStatus.PAID.value,
                    payment_reference_id=payment_reference_id,
                )
                session.add(order)
                session.flush()
                header_written = True

                session.add_all(self.build_lines(order.id, snapshot))
                session.flush()
        except IntegrityError as exc:
            if not header_written and self._reference_taken(payment_reference_id):
                logger.info("Concurrent commit won the payment reference", payment_reference_id=payment_reference_id)
                return None
            failure = OrderDetailFailed if header_written else OrderCreateFailed
            raise self._unrecorded(failure, payment_reference_id, str(exc.orig)) from exc
        except SQLAlchemyError as exc:
            failure = OrderDetailFailed if header_written else OrderCreateFailed
            raise self._unrecorded(failure, payment_reference_id, str(exc)) from exc

        return order.id

    def build_lines(self, order_id: str, snapshot: CartSnapshot) -> list[OrderLine]:
        return [
            OrderLine(
                order_id=order_id,
                product_id=line.product_id,
                product_name=line.product_name,
                quantity=line.quantity,
                unit_price=line.unit_price,
            )
            for line in snapshot.lines
        ]

    def _record_payment(self, order_id: str, payment_reference_id: str, amount_minor_units: int) -> bool:
        try:
            with self.database.transaction() as session:
                session.add(
                    PaymentRecord(
                        order_id=order_id,
                        amount=from_minor_units(amount_minor_units),
                        method=EXTERNAL_PROCESSOR,
                        status=PaymentRecordStatus.APPROVED.value,
                        processor_reference_id=payment_reference_id,
                    )
                )
        except SQLAlchemyError:
            logger.exception(
                "Payment record not written; order stands",
                order_id=order_id,
                payment_reference_id=payment_reference_id,
            )
            return False
        return True

    def _reference_taken(self, payment_reference_id: str) -> bool:
        try:
            with self.database.session() as session:
                return (
                    session.scalars(select(Order.id).where(Order.payment_reference_id == payment_reference_id)).first()
                    is not None
                )
        except SQLAlchemyError:
            return False

    def _unrecorded(
        self,
        failure: type[OrderCommitError],
        payment_reference_id: str,
        detail: str,
    ) -> OrderCommitError:
        logger.error(
            "Paid but unrecorded",
            failure=failure.code,
            payment_reference_id=payment_reference_id,
            detail=detail,
            needs_reconciliation=True,
        )
        contact = get_settings().support_contact
        return failure(
            f"Your payment was received but your order could not be saved. "
            f"Please contact {contact} with payment reference {payment_reference_id}.",
            payment_reference_id=payment_reference_id,
        )

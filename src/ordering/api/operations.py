"""Buyer-facing operations surface.

Every operation takes the caller's ``RequestContext`` and returns an
``OperationResult`` envelope. This is the only place where domain errors are
turned into ``{success: False, message}`` responses; nothing raised below it
escapes to the presentation layer.
"""

from collections.abc import Callable
from decimal import Decimal, InvalidOperation
from typing import Any

import structlog

from identity.address.registry import AddressRegistry
from identity.context import RequestContext
from ordering.cart.cart import CartSnapshot
from ordering.cart.repository import CartRepository
from ordering.checkout.controller import CheckoutController
from ordering.checkout.session import CheckoutSessionStore, CheckoutStep
from ordering.order.coordinator import OrderCommitCoordinator
from ordering.order.history import OrderHistory
from payments.gateway.port import PaymentGateway
from payments.payment.authorization import PaymentAuthorizer
from shared.database import Database, get_database
from shared.exceptions import MarketplaceError, OrderCommitError, ValidationError
from shared.result import OperationResult

logger = structlog.get_logger(__name__)

UNEXPECTED_ERROR = "unexpected_error"


class BuyerOperations:
    def __init__(
        self,
        database: Database,
        gateway: PaymentGateway | None = None,
        sessions: CheckoutSessionStore | None = None,
    ) -> None:
        self.carts = CartRepository(database)
        self.addresses = AddressRegistry(database)
        self.payments = PaymentAuthorizer(self.carts, gateway)
        self.coordinator = OrderCommitCoordinator(database, self.addresses, self.payments)
        self.history = OrderHistory(database)
        self.checkout = CheckoutController(
            self.carts,
            self.addresses,
            self.payments,
            self.coordinator,
            sessions or CheckoutSessionStore(),
        )

    # ------------------------------------------------------------------
    # Cart
    # ------------------------------------------------------------------
    def get_cart_items(self, ctx: RequestContext) -> OperationResult:
        def run():
            lines = self.carts.lines_for(ctx.buyer_id)
            total = sum((line.subtotal for line in lines), Decimal("0"))
            return {"items": [line.to_dict() for line in lines], "total": str(total)}

        return self._envelope("get_cart_items", "Cart loaded", run)

    def add_to_cart(self, ctx: RequestContext, product_id: str, quantity: int = 1) -> OperationResult:
        return self._envelope(
            "add_to_cart",
            "Product added to cart",
            lambda: self.carts.add_item(ctx, product_id, quantity),
        )

    def update_cart_item_quantity(self, ctx: RequestContext, product_id: str, quantity: int) -> OperationResult:
        message = "Product removed from cart" if quantity <= 0 else "Quantity updated"
        return self._envelope(
            "update_cart_item_quantity",
            message,
            lambda: self.carts.set_quantity(ctx, product_id, quantity),
        )

    def remove_from_cart(self, ctx: RequestContext, product_id: str) -> OperationResult:
        return self._envelope(
            "remove_from_cart",
            "Product removed from cart",
            lambda: self.carts.remove_item(ctx, product_id),
        )

    def clear_cart(self, ctx: RequestContext) -> OperationResult:
        return self._envelope("clear_cart", "Cart emptied", lambda: self.carts.clear(ctx))

    # ------------------------------------------------------------------
    # Addresses
    # ------------------------------------------------------------------
    def save_shipping_address(self, ctx: RequestContext, fields: dict) -> OperationResult:
        return self._envelope(
            "save_shipping_address",
            "Shipping address saved",
            lambda: {"address_id": self.addresses.save(ctx.buyer_id, fields)},
        )

    def update_address(self, ctx: RequestContext, address_id: str, fields: dict) -> OperationResult:
        return self._envelope(
            "update_address",
            "Address updated",
            lambda: self.addresses.update(ctx.buyer_id, address_id, fields),
        )

    def delete_address(self, ctx: RequestContext, address_id: str) -> OperationResult:
        return self._envelope(
            "delete_address",
            "Address deleted",
            lambda: self.addresses.delete(ctx.buyer_id, address_id),
        )

    def list_addresses(self, ctx: RequestContext) -> OperationResult:
        return self._envelope(
            "list_addresses",
            "Addresses loaded",
            lambda: [address.to_dict() for address in self.addresses.list(ctx.buyer_id)],
        )

    # ------------------------------------------------------------------
    # Payments and orders
    # ------------------------------------------------------------------
    def create_payment_intent(self, ctx: RequestContext) -> OperationResult:
        def run():
            intent = self.payments.create_intent(ctx)
            return {
                "client_secret": intent.client_secret,
                "amount": intent.amount_minor_units,
                "intent_id": intent.intent_id,
            }

        return self._envelope("create_payment_intent", "Payment prepared", run)

    def create_order(
        self,
        ctx: RequestContext,
        cart_snapshot: CartSnapshot | list[dict],
        address_id: str,
        payment_reference_id: str,
        amount_minor_units: int,
    ) -> OperationResult:
        def run():
            snapshot = cart_snapshot if isinstance(cart_snapshot, CartSnapshot) else _parse_snapshot(cart_snapshot)
            result = self.coordinator.commit(ctx, snapshot, address_id, payment_reference_id, amount_minor_units)
            return {
                "order_id": result.order_id,
                "duplicate": result.duplicate,
                "payment_recorded": result.payment_recorded,
            }

        return self._envelope("create_order", "Order placed", run)

    def list_orders(self, ctx: RequestContext) -> OperationResult:
        return self._envelope(
            "list_orders",
            "Orders loaded",
            lambda: [summary.to_dict() for summary in self.history.list_orders(ctx.buyer_id)],
        )

    def get_order(self, ctx: RequestContext, order_id: str) -> OperationResult:
        return self._envelope(
            "get_order",
            "Order loaded",
            lambda: self.history.get_order(ctx.buyer_id, order_id).to_dict(),
        )

    # ------------------------------------------------------------------
    # Checkout
    # ------------------------------------------------------------------
    def start_checkout(self, ctx: RequestContext) -> OperationResult:
        def run():
            start = self.checkout.start(ctx)
            if start.redirect_to is not None:
                return {"redirect_to": start.redirect_to}
            return start.session.to_dict()

        return self._envelope("start_checkout", "Checkout started", run)

    def current_checkout(self, ctx: RequestContext) -> OperationResult:
        def run():
            session = self.checkout.current(ctx)
            return session.to_dict() if session is not None else None

        return self._envelope("current_checkout", "Checkout loaded", run)

    def submit_shipping(self, ctx: RequestContext, fields: dict) -> OperationResult:
        return self._envelope(
            "submit_shipping",
            "Shipping address saved",
            lambda: self.checkout.submit_shipping(ctx, fields).to_dict(),
        )

    def submit_payment(self, ctx: RequestContext, payment_method: dict, billing_details: dict) -> OperationResult:
        operation = "submit_payment"
        try:
            session = self.checkout.submit_payment(ctx, payment_method, billing_details)
        except MarketplaceError as exc:
            return self._failure(operation, exc)
        except Exception:
            logger.exception("Unexpected error", operation=operation)
            return OperationResult.fail("Something went wrong. Please try again.", UNEXPECTED_ERROR)

        data = session.to_dict()
        if session.step is CheckoutStep.CONFIRMED:
            return OperationResult.ok(session.message, data)
        if session.step is CheckoutStep.PAID_UNRECORDED:
            return OperationResult.fail(session.message, OrderCommitError.code, data)
        if session.next_action is not None:
            return OperationResult.fail("Additional authentication is required", "requires_action", data)
        return OperationResult.fail(session.failure_reason, "payment_failed", data)

    def abandon_checkout(self, ctx: RequestContext) -> OperationResult:
        return self._envelope("abandon_checkout", "Checkout abandoned", lambda: self.checkout.abandon(ctx))

    # ------------------------------------------------------------------
    def _envelope(self, operation: str, message: str, action: Callable[[], Any]) -> OperationResult:
        try:
            data = action()
        except MarketplaceError as exc:
            return self._failure(operation, exc)
        except Exception:
            logger.exception("Unexpected error", operation=operation)
            return OperationResult.fail("Something went wrong. Please try again.", UNEXPECTED_ERROR)
        return OperationResult.ok(message, data)

    def _failure(self, operation: str, exc: MarketplaceError) -> OperationResult:
        logger.info("Operation refused", operation=operation, code=exc.code, reason=exc.message)
        data = None
        if isinstance(exc, ValidationError):
            data = {"errors": exc.messages}
        elif isinstance(exc, OrderCommitError):
            data = {"payment_reference_id": exc.payment_reference_id}
        return OperationResult.fail(exc.message, exc.code, data)


def _parse_snapshot(raw: list[dict]) -> CartSnapshot:
    try:
        return CartSnapshot.from_list(raw or [])
    except (KeyError, TypeError, ValueError, InvalidOperation) as exc:
        raise ValidationError({"cart_snapshot": [f"Malformed cart snapshot: {exc}"]}) from exc


# ---------------------------------------------------------------------------
# Process-wide operations surface
# ---------------------------------------------------------------------------
_current_operations: BuyerOperations | None = None


def get_operations() -> BuyerOperations:
    """Return the process operations surface, wired to the process database and gateway."""
    global _current_operations
    if _current_operations is None:
        _current_operations = BuyerOperations(get_database())
    return _current_operations


def set_operations(operations: BuyerOperations) -> None:
    """Override the operations surface (useful for tests)."""
    global _current_operations
    _current_operations = operations


def reset_operations() -> None:
    global _current_operations
    _current_operations = None

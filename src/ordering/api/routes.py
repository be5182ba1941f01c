"""FastAPI routes for the Ordering domain (cart, orders and checkout)."""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from identity.api.dependencies import get_request_context
from identity.context import RequestContext
from ordering.api.operations import BuyerOperations, get_operations
from ordering.api.schemas import (
    AddToCartRequest,
    CreateOrderRequest,
    PaymentRequest,
    ShippingRequest,
    UpdateCartQuantityRequest,
)
from shared.api import respond

# ---------------------------------------------------------------------------
# Cart Router
# ---------------------------------------------------------------------------
cart_router = APIRouter(prefix="/cart", tags=["cart"])


@cart_router.get("")
def get_cart(
    ctx: RequestContext = Depends(get_request_context),
    operations: BuyerOperations = Depends(get_operations),
) -> JSONResponse:
    return respond(operations.get_cart_items(ctx))


@cart_router.post("/items")
def add_cart_item(
    body: AddToCartRequest,
    ctx: RequestContext = Depends(get_request_context),
    operations: BuyerOperations = Depends(get_operations),
) -> JSONResponse:
    return respond(operations.add_to_cart(ctx, body.product_id, body.quantity))


@cart_router.put("/items/{product_id}")
def update_cart_item_quantity(
    product_id: str,
    body: UpdateCartQuantityRequest,
    ctx: RequestContext = Depends(get_request_context),
    operations: BuyerOperations = Depends(get_operations),
) -> JSONResponse:
    return respond(operations.update_cart_item_quantity(ctx, product_id, body.quantity))


@cart_router.delete("/items/{product_id}")
def remove_cart_item(
    product_id: str,
    ctx: RequestContext = Depends(get_request_context),
    operations: BuyerOperations = Depends(get_operations),
) -> JSONResponse:
    return respond(operations.remove_from_cart(ctx, product_id))


@cart_router.delete("")
def clear_cart(
    ctx: RequestContext = Depends(get_request_context),
    operations: BuyerOperations = Depends(get_operations),
) -> JSONResponse:
    return respond(operations.clear_cart(ctx))


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.get("")
def list_orders(
    ctx: RequestContext = Depends(get_request_context),
    operations: BuyerOperations = Depends(get_operations),
) -> JSONResponse:
    return respond(operations.list_orders(ctx))


@order_router.get("/{order_id}")
def get_order(
    order_id: str,
    ctx: RequestContext = Depends(get_request_context),
    operations: BuyerOperations = Depends(get_operations),
) -> JSONResponse:
    return respond(operations.get_order(ctx, order_id))


@order_router.post("")
def create_order(
    body: CreateOrderRequest,
    ctx: RequestContext = Depends(get_request_context),
    operations: BuyerOperations = Depends(get_operations),
) -> JSONResponse:
    """Commit an order for a payment the processor has already confirmed.

    Safe to retry: the same ``payment_reference_id`` always resolves to the
    same order.
    """
    result = operations.create_order(
        ctx,
        [line.model_dump() for line in body.cart_snapshot],
        body.address_id,
        body.payment_reference_id,
        body.amount,
    )
    created = result.success and not (result.data or {}).get("duplicate")
    return respond(result, success_status=201 if created else 200)


# ---------------------------------------------------------------------------
# Checkout Router
# ---------------------------------------------------------------------------
checkout_router = APIRouter(prefix="/checkout", tags=["checkout"])


@checkout_router.post("")
def start_checkout(
    ctx: RequestContext = Depends(get_request_context),
    operations: BuyerOperations = Depends(get_operations),
) -> JSONResponse:
    return respond(operations.start_checkout(ctx))


@checkout_router.get("")
def current_checkout(
    ctx: RequestContext = Depends(get_request_context),
    operations: BuyerOperations = Depends(get_operations),
) -> JSONResponse:
    return respond(operations.current_checkout(ctx))


@checkout_router.post("/shipping")
def submit_shipping(
    body: ShippingRequest,
    ctx: RequestContext = Depends(get_request_context),
    operations: BuyerOperations = Depends(get_operations),
) -> JSONResponse:
    return respond(operations.submit_shipping(ctx, body.model_dump()))


@checkout_router.post("/payment")
def submit_payment(
    body: PaymentRequest,
    ctx: RequestContext = Depends(get_request_context),
    operations: BuyerOperations = Depends(get_operations),
) -> JSONResponse:
    return respond(operations.submit_payment(ctx, body.payment_method, body.billing_details))


@checkout_router.delete("")
def abandon_checkout(
    ctx: RequestContext = Depends(get_request_context),
    operations: BuyerOperations = Depends(get_operations),
) -> JSONResponse:
    return respond(operations.abandon_checkout(ctx))

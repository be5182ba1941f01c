"""Cart Repository: the only code that writes cart rows.

Mutations take a ``RequestContext`` and act on the caller's own cart, so no
buyer can touch another buyer's lines. Reads used by the payment and checkout
flow take the buyer id directly because the caller has already been resolved.
"""

from decimal import Decimal
from urllib.parse import quote

import structlog
from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from catalogue.product.product import Product
from identity.context import RequestContext
from ordering.cart.cart import Cart, CartLine, CartLineView, CartSnapshot, CartSnapshotLine
from shared.config import get_settings
from shared.database import Database, store_errors
from shared.exceptions import ObjectNotFoundError, ValidationError

logger = structlog.get_logger(__name__)

UNAVAILABLE_PRODUCT_NAME = "Product unavailable"


def placeholder_image(text: str) -> str:
    return get_settings().placeholder_image_url.format(text=quote(text, safe=""))


def resolve_image_url(product: Product) -> str:
    """Principal image, else the first image by position, else a placeholder naming the product."""
    images = sorted(product.images, key=lambda image: image.position)
    for image in images:
        if image.is_principal:
            return image.url
    if images:
        return images[0].url
    return placeholder_image(product.name)


class CartRepository:
    def __init__(self, database: Database) -> None:
        self.database = database

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    def get_cart(self, buyer_id: str) -> Cart | None:
        with store_errors("load the cart"), self.database.session() as session:
            return _cart_of(session, buyer_id)

    def get_or_create_cart(self, buyer_id: str) -> Cart:
        with store_errors("load the cart"):
            cart = self.get_cart(buyer_id)
            if cart is not None:
                return cart
            try:
                with self.database.transaction() as session:
                    cart = Cart(buyer_id=buyer_id)
                    session.add(cart)
            except IntegrityError:
                # Another request created this buyer's cart first
                cart = self.get_cart(buyer_id)
                if cart is None:
                    raise
                return cart

        logger.info("Cart created", buyer_id=buyer_id, cart_id=cart.id)
        return cart

    def list_lines(self, cart_id: str) -> list[CartLineView]:
        with store_errors("load the cart items"), self.database.session() as session:
            rows = session.execute(
                select(CartLine, Product)
                .outerjoin(Product, Product.id == CartLine.product_id)
                .where(CartLine.cart_id == cart_id)
            ).all()
            views = [_view(line, product) for line, product in rows]
        return sorted(views, key=lambda view: (view.name.casefold(), view.product_id))

    def lines_for(self, buyer_id: str) -> list[CartLineView]:
        cart = self.get_cart(buyer_id)
        if cart is None:
            return []
        return self.list_lines(cart.id)

    def cart_total(self, buyer_id: str) -> Decimal:
        return sum((line.subtotal for line in self.lines_for(buyer_id)), Decimal("0"))

    def snapshot(self, buyer_id: str) -> CartSnapshot:
        """Freeze the buyer's cart as it would be ordered right now. Unavailable products are left out."""
        return CartSnapshot(
            lines=tuple(
                CartSnapshotLine(
                    product_id=line.product_id,
                    product_name=line.name,
                    quantity=line.quantity,
                    unit_price=line.unit_price,
                )
                for line in self.lines_for(buyer_id)
                if line.available
            )
        )

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------
    def add_item(self, ctx: RequestContext, product_id: str, quantity: int = 1) -> None:
        buyer_id = ctx.buyer_id
        if quantity < 1:
            raise ValidationError({"quantity": ["Quantity must be at least 1"]})

        with store_errors("add the product to the cart"):
            with self.database.session() as session:
                product = session.get(Product, product_id)
            if product is None or not product.is_active:
                raise ObjectNotFoundError("Product not found")

            cart = self.get_or_create_cart(buyer_id)
            try:
                self._increment_or_insert(cart.id, product_id, quantity)
            except IntegrityError:
                # A concurrent add inserted the line; retry as an increment
                self._increment_or_insert(cart.id, product_id, quantity)

        logger.info("Cart line added", buyer_id=buyer_id, product_id=product_id, quantity=quantity)

    def set_quantity(self, ctx: RequestContext, product_id: str, quantity: int) -> None:
        if quantity <= 0:
            self.remove_item(ctx, product_id)
            return

        buyer_id = ctx.buyer_id
        with store_errors("update the cart item"), self.database.transaction() as session:
            line = _line_of(session, buyer_id, product_id)
            if line is None:
                raise ObjectNotFoundError("Product is not in the cart")
            line.quantity = quantity

        logger.info("Cart line quantity set", buyer_id=buyer_id, product_id=product_id, quantity=quantity)

    def remove_item(self, ctx: RequestContext, product_id: str) -> None:
        buyer_id = ctx.buyer_id
        with store_errors("remove the cart item"), self.database.transaction() as session:
            cart = _cart_of(session, buyer_id)
            if cart is None:
                return
            session.execute(delete(CartLine).where(CartLine.cart_id == cart.id, CartLine.product_id == product_id))

        logger.info("Cart line removed", buyer_id=buyer_id, product_id=product_id)

    def clear(self, ctx: RequestContext | str) -> None:
        buyer_id = ctx.buyer_id if isinstance(ctx, RequestContext) else ctx
        with store_errors("clear the cart"), self.database.transaction() as session:
            cart = _cart_of(session, buyer_id)
            if cart is None:
                return
            session.execute(delete(CartLine).where(CartLine.cart_id == cart.id))

        logger.info("Cart cleared", buyer_id=buyer_id)

    def _increment_or_insert(self, cart_id: str, product_id: str, quantity: int) -> None:
        with self.database.transaction() as session:
            line = session.scalars(
                select(CartLine).where(CartLine.cart_id == cart_id, CartLine.product_id == product_id)
            ).first()
            if line is None:
                session.add(CartLine(cart_id=cart_id, product_id=product_id, quantity=quantity))
            else:
                line.quantity = line.quantity + quantity


def _cart_of(session: Session, buyer_id: str) -> Cart | None:
    return session.scalars(select(Cart).where(Cart.buyer_id == buyer_id)).first()


def _line_of(session: Session, buyer_id: str, product_id: str) -> CartLine | None:
    return session.scalars(
        select(CartLine)
        .join(Cart, Cart.id == CartLine.cart_id)
        .where(Cart.buyer_id == buyer_id, CartLine.product_id == product_id)
    ).first()


def _view(line: CartLine, product: Product | None) -> CartLineView:
    if product is None:
        return CartLineView(
            line_id=line.id,
            product_id=line.product_id,
            name=UNAVAILABLE_PRODUCT_NAME,
            unit_price=Decimal("0"),
            quantity=line.quantity,
            image_url=placeholder_image("Error"),
            available=False,
        )
    return CartLineView(
        line_id=line.id,
        product_id=product.id,
        name=product.name,
        unit_price=Decimal(product.price),
        quantity=line.quantity,
        image_url=resolve_image_url(product),
    )

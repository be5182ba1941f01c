"""Buyer carts.

A Cart is created lazily the first time a buyer adds something and is never
deleted; committing an order only empties it. Lines reference products by id
without a foreign key, so a product can disappear from the catalogue while a
cart still points at it. Prices are never stored on the line: they are read
from the catalogue whenever the cart is displayed or snapshotted.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from shared.database import Base, new_id, utcnow


class Cart(Base):
    __tablename__ = "carts"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    buyer_id: Mapped[str] = mapped_column(String(64), unique=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)


class CartLine(Base):
    __tablename__ = "cart_lines"
    __table_args__ = (
        UniqueConstraint("cart_id", "product_id", name="uq_cart_lines_cart_product"),
        CheckConstraint("quantity >= 1", name="ck_cart_lines_quantity_positive"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    cart_id: Mapped[str] = mapped_column(ForeignKey("carts.id", ondelete="CASCADE"), index=True)
    product_id: Mapped[str] = mapped_column(String(36))
    quantity: Mapped[int] = mapped_column(Integer)


@dataclass(frozen=True)
class CartLineView:
    """A cart line joined with its product, ready to render."""

    line_id: str
    product_id: str
    name: str
    unit_price: Decimal
    quantity: int
    image_url: str
    available: bool = True

    @property
    def subtotal(self) -> Decimal:
        return self.unit_price * self.quantity

    def to_dict(self) -> dict:
        return {
            "line_id": self.line_id,
            "product_id": self.product_id,
            "name": self.name,
            "unit_price": str(self.unit_price),
            "quantity": self.quantity,
            "subtotal": str(self.subtotal),
            "image_url": self.image_url,
            "available": self.available,
        }


@dataclass(frozen=True)
class CartSnapshotLine:
    product_id: str
    product_name: str
    quantity: int
    unit_price: Decimal

    @property
    def subtotal(self) -> Decimal:
        return self.unit_price * self.quantity

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "product_name": self.product_name,
            "quantity": self.quantity,
            "unit_price": str(self.unit_price),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "CartSnapshotLine":
        return cls(
            product_id=str(data["product_id"]),
            product_name=str(data.get("product_name") or ""),
            quantity=int(data["quantity"]),
            unit_price=_price(data["unit_price"]),
        )


@dataclass(frozen=True)
class CartSnapshot:
    """The cart contents frozen at the moment payment was requested.

    Order lines are written from this, never from a fresh catalogue read.
    """

    lines: tuple[CartSnapshotLine, ...] = field(default_factory=tuple)

    @property
    def is_empty(self) -> bool:
        return not self.lines

    @property
    def total(self) -> Decimal:
        return sum((line.subtotal for line in self.lines), Decimal("0"))

    def to_list(self) -> list[dict]:
        return [line.to_dict() for line in self.lines]

    @classmethod
    def from_list(cls, data: list[dict]) -> "CartSnapshot":
        return cls(lines=tuple(CartSnapshotLine.from_dict(item) for item in data))


def _price(value) -> Decimal:
    price = Decimal(str(value))
    if not price.is_finite() or price < 0:
        raise ValueError(f"Invalid unit price {value!r}")
    return price

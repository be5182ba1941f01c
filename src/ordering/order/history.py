"""A buyer's order history, as shown on their profile page."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

import structlog
from sqlalchemy import select

from ordering.order.order import Order
from shared.database import Database, store_errors
from shared.exceptions import ObjectNotFoundError

logger = structlog.get_logger(__name__)

NO_PRODUCTS = "No products in this order."
MORE_SUFFIX = " and more..."


@dataclass(frozen=True)
class OrderSummary:
    id: str
    total: Decimal
    status: str
    created_at: datetime
    items_summary: str

    @property
    def formatted_date(self) -> str:
        return self.created_at.strftime("%d/%m/%Y")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "total": str(self.total),
            "status": self.status,
            "created_at": self.created_at.isoformat(),
            "formatted_date": self.formatted_date,
            "items_summary": self.items_summary,
        }


def summarize_items(product_names: list[str]) -> str:
    if not product_names:
        return NO_PRODUCTS
    if len(product_names) > 1:
        return product_names[0] + MORE_SUFFIX
    return product_names[0]


class OrderHistory:
    def __init__(self, database: Database) -> None:
        self.database = database

    def list_orders(self, buyer_id: str) -> list[OrderSummary]:
        """Newest first."""
        with store_errors("load your orders"), self.database.session() as session:
            orders = session.scalars(
                select(Order).where(Order.buyer_id == buyer_id).order_by(Order.created_at.desc(), Order.id)
            ).all()
            return [
                OrderSummary(
                    id=order.id,
                    total=order.total,
                    status=order.status,
                    created_at=order.created_at,
                    items_summary=summarize_items([line.product_name for line in order.lines]),
                )
                for order in orders
            ]

    def get_order(self, buyer_id: str, order_id: str) -> Order:
        with store_errors("load the order"), self.database.session() as session:
            order = session.scalars(select(Order).where(Order.id == order_id, Order.buyer_id == buyer_id)).first()
        if order is None:
            raise ObjectNotFoundError("Order not found")
        return order

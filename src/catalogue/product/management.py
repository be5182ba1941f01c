"""Minimal catalogue writes: list a product, reprice it, change its status."""

from decimal import Decimal

import structlog
from sqlalchemy import select

from catalogue.product.product import Product, ProductImage, ProductStatus
from shared.database import Database, store_errors
from shared.exceptions import ObjectNotFoundError, ValidationError

logger = structlog.get_logger(__name__)


class ProductCatalogue:
    def __init__(self, database: Database) -> None:
        self.database = database

    def add_product(
        self,
        name: str,
        price: Decimal | str | float,
        store_id: str | None = None,
        description: str | None = None,
        images: list[dict] | None = None,
        status: str = ProductStatus.ACTIVE.value,
    ) -> str:
        """Create a product. ``images`` is a list of ``{"url", "is_principal"}`` dicts in display order."""
        price = _to_price(price)
        if not name or not name.strip():
            raise ValidationError({"name": ["Product name is required"]})
        ProductStatus(status)

        with store_errors("create the product"), self.database.transaction() as session:
            product = Product(
                name=name.strip(),
                price=price,
                store_id=store_id,
                description=description,
                status=status,
                images=[
                    ProductImage(url=image["url"], is_principal=bool(image.get("is_principal")), position=position)
                    for position, image in enumerate(images or [])
                ],
            )
            session.add(product)

        logger.info("Product listed", product_id=product.id, price=str(price))
        return product.id

    def change_price(self, product_id: str, price: Decimal | str | float) -> None:
        price = _to_price(price)
        with store_errors("reprice the product"), self.database.transaction() as session:
            product = session.get(Product, product_id)
            if product is None:
                raise ObjectNotFoundError("Product not found")
            product.price = price
        logger.info("Product repriced", product_id=product_id, price=str(price))

    def set_status(self, product_id: str, status: str) -> None:
        ProductStatus(status)
        with store_errors("change the product status"), self.database.transaction() as session:
            product = session.get(Product, product_id)
            if product is None:
                raise ObjectNotFoundError("Product not found")
            product.status = status

    def get(self, product_id: str) -> Product:
        with store_errors("load the product"), self.database.session() as session:
            product = session.scalars(select(Product).where(Product.id == product_id)).first()
        if product is None:
            raise ObjectNotFoundError("Product not found")
        return product


def _to_price(value: Decimal | str | float) -> Decimal:
    price = Decimal(str(value)).quantize(Decimal("0.01"))
    if price < 0:
        raise ValidationError({"price": ["Price cannot be negative"]})
    return price

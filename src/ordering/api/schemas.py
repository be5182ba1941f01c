"""Pydantic request schemas for the Ordering API.

These are external contracts, separate from the internal cart snapshot and
coordinator types.
"""

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Cart Request Schemas
# ---------------------------------------------------------------------------
class AddToCartRequest(BaseModel):
    product_id: str
    quantity: int = Field(ge=1, default=1)


class UpdateCartQuantityRequest(BaseModel):
    # Zero or less removes the line
    quantity: int


# ---------------------------------------------------------------------------
# Order Request Schemas
# ---------------------------------------------------------------------------
class SnapshotLineSchema(BaseModel):
    product_id: str
    product_name: str = ""
    quantity: int
    unit_price: str


class CreateOrderRequest(BaseModel):
    cart_snapshot: list[SnapshotLineSchema]
    address_id: str
    payment_reference_id: str
    amount: int

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "cart_snapshot": [
                        {
                            "product_id": "0b7c6f0e-3a61-4b5e-9d1e-5a6b2f1c9e11",
                            "product_name": "Alebrije de cobre",
                            "quantity": 1,
                            "unit_price": "120.00",
                        }
                    ],
                    "address_id": "5f0a1e2d-1c3b-4a5d-8e7f-6a5b4c3d2e1f",
                    "payment_reference_id": "pi_3PabcDEF",
                    "amount": 12000,
                }
            ]
        }
    }


# ---------------------------------------------------------------------------
# Checkout Request Schemas
# ---------------------------------------------------------------------------
class ShippingRequest(BaseModel):
    recipient_name: str = ""
    street: str = ""
    city: str = ""
    region: str = ""
    postal_code: str = ""
    country: str = ""
    phone: str = ""


class PaymentRequest(BaseModel):
    payment_method: dict = Field(default_factory=dict)
    billing_details: dict = Field(default_factory=dict)

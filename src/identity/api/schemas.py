"""Pydantic request schemas for the Identity API.

Field rules (lengths, digit counts) are enforced by ``AddressFields`` so that
every caller, HTTP or not, gets the same validation errors in the envelope.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

# --- Request Schemas ---


class AddressRequest(BaseModel):
    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "recipient_name": "María López",
                    "street": "Av. Juárez 120",
                    "city": "Oaxaca",
                    "region": "Oaxaca",
                    "postal_code": "68000",
                    "country": "México",
                    "phone": "9511234567",
                }
            ]
        }
    }

    recipient_name: str = ""
    street: str = ""
    city: str = ""
    region: str = ""
    postal_code: str = ""
    country: str = ""
    phone: str = ""


class SignInRequest(BaseModel):
    user_id: str = Field(..., min_length=1, max_length=64)
    email: str = Field(..., max_length=254)

"""Shipping address rows and the validated field set used to write them.

An Address belongs to exactly one buyer. Orders reference it by id but never
own it. Two addresses of the same buyer are the same place when street, city,
region, postal code and country match after trimming; recipient name and phone
are delivery details, not part of that identity.
"""

import re

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from shared.database import Base, new_id
from shared.exceptions import ValidationError

_POSTAL_CODE = re.compile(r"^\d{5}$")
_PHONE = re.compile(r"^\d{10}$")

DEDUP_FIELDS = ("street", "city", "region", "postal_code", "country")


class Address(Base):
    __tablename__ = "addresses"
    __table_args__ = (
        UniqueConstraint("owner_id", *DEDUP_FIELDS, name="uq_addresses_owner_place"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    owner_id: Mapped[str] = mapped_column(String(64), index=True)
    street: Mapped[str] = mapped_column(String(255))
    city: Mapped[str] = mapped_column(String(100))
    region: Mapped[str] = mapped_column(String(100))
    postal_code: Mapped[str] = mapped_column(String(20))
    country: Mapped[str] = mapped_column(String(100))
    recipient_name: Mapped[str] = mapped_column(String(255))
    phone: Mapped[str] = mapped_column(String(20))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "street": self.street,
            "city": self.city,
            "region": self.region,
            "postal_code": self.postal_code,
            "country": self.country,
            "recipient_name": self.recipient_name,
            "phone": self.phone,
        }


class AddressFields(BaseModel):
    """Shipping form input, trimmed and checked before it reaches the store."""

    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    recipient_name: str = Field(min_length=3)
    street: str = Field(min_length=5)
    city: str = Field(min_length=2)
    region: str = Field(min_length=2)
    postal_code: str
    country: str = Field(min_length=1)
    phone: str

    @field_validator("postal_code")
    @classmethod
    def postal_code_has_five_digits(cls, value: str) -> str:
        if not _POSTAL_CODE.match(value):
            raise ValueError("Postal code must be exactly 5 digits")
        return value

    @field_validator("phone")
    @classmethod
    def phone_has_ten_digits(cls, value: str) -> str:
        if not _PHONE.match(value):
            raise ValueError("Phone number must be exactly 10 digits")
        return value

    @classmethod
    def parse(cls, raw: "AddressFields | dict") -> "AddressFields":
        """Validate raw input, translating pydantic errors into the domain error shape."""
        if isinstance(raw, cls):
            return raw
        try:
            return cls.model_validate(raw)
        except PydanticValidationError as exc:
            messages: dict[str, list[str]] = {}
            for error in exc.errors():
                field = ".".join(str(part) for part in error["loc"]) or "address"
                messages.setdefault(field, []).append(error["msg"])
            raise ValidationError(messages) from exc

    def dedup_key(self) -> dict[str, str]:
        return {field: getattr(self, field) for field in DEDUP_FIELDS}

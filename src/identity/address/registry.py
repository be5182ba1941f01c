"""Address Registry: deduplicating address book per buyer.

Every query filters by owner as well as by id, so a buyer can never read or
change another buyer's address. A foreign address and a missing one produce
the same ``ObjectNotFoundError``.
"""

import structlog
from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from identity.address.address import Address, AddressFields
from shared.database import Database, store_errors
from shared.exceptions import ObjectNotFoundError, ValidationError

logger = structlog.get_logger(__name__)

_NOT_FOUND = "Address not found"


class AddressRegistry:
    def __init__(self, database: Database) -> None:
        self.database = database

    def save(self, buyer_id: str, fields: AddressFields | dict) -> str:
        """Store an address for the buyer, reusing an identical one when it exists."""
        address_fields = AddressFields.parse(fields)

        with store_errors("save the shipping address"):
            existing_id = self._find_identical(buyer_id, address_fields)
            if existing_id is not None:
                logger.info("Reusing identical shipping address", buyer_id=buyer_id, address_id=existing_id)
                return existing_id

            try:
                with self.database.transaction() as session:
                    address = Address(owner_id=buyer_id, **address_fields.model_dump())
                    session.add(address)
            except IntegrityError:
                # A concurrent save of the same place got there first
                existing_id = self._find_identical(buyer_id, address_fields)
                if existing_id is None:
                    raise
                return existing_id

        logger.info("Shipping address saved", buyer_id=buyer_id, address_id=address.id)
        return address.id

    def update(self, buyer_id: str, address_id: str, fields: AddressFields | dict) -> None:
        address_fields = AddressFields.parse(fields)

        with store_errors("update the address"):
            try:
                with self.database.transaction() as session:
                    result = session.execute(
                        update(Address)
                        .where(Address.id == address_id, Address.owner_id == buyer_id)
                        .values(**address_fields.model_dump())
                    )
                    if result.rowcount == 0:
                        raise ObjectNotFoundError(_NOT_FOUND)
            except IntegrityError as exc:
                raise ValidationError({"address": ["An identical address is already saved"]}) from exc

        logger.info("Address updated", buyer_id=buyer_id, address_id=address_id)

    def delete(self, buyer_id: str, address_id: str) -> None:
        with store_errors("delete the address"), self.database.transaction() as session:
            result = session.execute(
                delete(Address).where(Address.id == address_id, Address.owner_id == buyer_id)
            )
            if result.rowcount == 0:
                raise ObjectNotFoundError(_NOT_FOUND)

        logger.info("Address deleted", buyer_id=buyer_id, address_id=address_id)

    def list(self, buyer_id: str) -> list[Address]:
        with store_errors("list addresses"), self.database.session() as session:
            return list(
                session.scalars(
                    select(Address).where(Address.owner_id == buyer_id).order_by(Address.street, Address.id)
                )
            )

    def get(self, buyer_id: str, address_id: str) -> Address:
        with store_errors("load the address"), self.database.session() as session:
            address = _owned(session, buyer_id, address_id)
        if address is None:
            raise ObjectNotFoundError(_NOT_FOUND)
        return address

    def owns(self, buyer_id: str, address_id: str) -> bool:
        with store_errors("load the address"), self.database.session() as session:
            return _owned(session, buyer_id, address_id) is not None

    def _find_identical(self, buyer_id: str, fields: AddressFields) -> str | None:
        with self.database.session() as session:
            return session.scalars(
                select(Address.id).filter_by(owner_id=buyer_id, **fields.dedup_key()).limit(1)
            ).first()


def _owned(session: Session, buyer_id: str, address_id: str) -> Address | None:
    return session.scalars(select(Address).where(Address.id == address_id, Address.owner_id == buyer_id)).first()

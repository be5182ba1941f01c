"""Payment records: the book-keeping row written after an order commits.

One record per processor reference id. A missing record never invalidates its
order; support reconciles from the order's own payment reference.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum

from sqlalchemy import DateTime, ForeignKey, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from shared.database import Base, new_id, utcnow

EXTERNAL_PROCESSOR = "external-processor"


class PaymentRecordStatus(Enum):
    APPROVED = "Approved"
    REJECTED = "Rejected"


class PaymentRecord(Base):
    __tablename__ = "payment_records"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    order_id: Mapped[str] = mapped_column(ForeignKey("orders.id"), index=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2))
    method: Mapped[str] = mapped_column(String(50), default=EXTERNAL_PROCESSOR)
    status: Mapped[str] = mapped_column(String(20), default=PaymentRecordStatus.APPROVED.value)
    processor_reference_id: Mapped[str] = mapped_column(String(255), unique=True)
    paid_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

"""In-progress checkout state, one per buyer.

Sessions live in process memory only. Losing one (restart, abandon) costs the
buyer nothing durable: the cart, saved addresses and any committed order are
all in the database.
"""

import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum

from ordering.cart.cart import CartLineView, CartSnapshot
from shared.config import get_settings


class CheckoutStep(Enum):
    SHIPPING = "shipping"
    PAYMENT = "payment"
    COMMITTING = "committing"
    CONFIRMED = "confirmed"
    PAID_UNRECORDED = "paid_unrecorded"


# Steps after which the buyer can no longer walk away from the checkout
LOCKED_STEPS = frozenset({CheckoutStep.COMMITTING, CheckoutStep.CONFIRMED, CheckoutStep.PAID_UNRECORDED})

# Steps a checkout never leaves; kept only long enough for the buyer to read the outcome
FINISHED_STEPS = frozenset({CheckoutStep.CONFIRMED, CheckoutStep.PAID_UNRECORDED})


@dataclass
class CheckoutSession:
    buyer_id: str
    step: CheckoutStep = CheckoutStep.SHIPPING
    lines: list[CartLineView] = field(default_factory=list)
    total: Decimal = Decimal("0")

    address_id: str | None = None
    address_saved: bool = False

    intent_id: str | None = None
    client_secret: str | None = None
    amount_minor_units: int | None = None
    snapshot: CartSnapshot | None = None

    payment_reference_id: str | None = None
    failure_reason: str | None = None
    next_action: dict | None = None
    order_id: str | None = None
    message: str | None = None
    finished_at: float | None = None

    @property
    def has_intent(self) -> bool:
        return self.client_secret is not None

    def to_dict(self) -> dict:
        return {
            "step": self.step.value,
            "lines": [line.to_dict() for line in self.lines],
            "total": str(self.total),
            "address_id": self.address_id,
            "address_saved": self.address_saved,
            "client_secret": self.client_secret,
            "amount_minor_units": self.amount_minor_units,
            "payment_reference_id": self.payment_reference_id,
            "failure_reason": self.failure_reason,
            "next_action": self.next_action,
            "order_id": self.order_id,
            "message": self.message,
        }


class CheckoutSessionStore:
    """Per-buyer sessions guarded by a lock.

    Finished sessions (confirmed or paid-but-unrecorded) are stamped the first
    time the store sees them and dropped once ``retention_seconds`` have passed.
    """

    def __init__(self, retention_seconds: float | None = None, clock: Callable[[], float] = time.monotonic) -> None:
        self._sessions: dict[str, CheckoutSession] = {}
        self._lock = threading.Lock()
        self.retention_seconds = retention_seconds
        self.clock = clock

    def get(self, buyer_id: str) -> CheckoutSession | None:
        with self._lock:
            self._evict_finished()
            return self._sessions.get(buyer_id)

    def put(self, session: CheckoutSession) -> None:
        with self._lock:
            self._evict_finished()
            self._sessions[session.buyer_id] = session

    def discard(self, buyer_id: str) -> None:
        with self._lock:
            self._sessions.pop(buyer_id, None)

    def clear(self) -> None:
        with self._lock:
            self._sessions.clear()

    def __len__(self) -> int:
        with self._lock:
            self._evict_finished()
            return len(self._sessions)

    def _evict_finished(self) -> None:
        retention = self.retention_seconds
        if retention is None:
            retention = get_settings().checkout_retention_seconds
        now = self.clock()
        for buyer_id, session in list(self._sessions.items()):
            if session.step not in FINISHED_STEPS:
                continue
            if session.finished_at is None:
                session.finished_at = now
            elif now - session.finished_at >= retention:
                del self._sessions[buyer_id]

"""Payment processor port (abstract interface).

Defines the contract that all processor adapters must implement. This enables
swapping between FakeGateway (dev/test) and StripeGateway (production) without
changing any domain or application code. Card data is handed straight to the
processor; the core only ever sees intent ids, client secrets and statuses.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum


class IntentStatus(Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    REQUIRES_ACTION = "requires_action"
    # Created but not yet confirmed
    PENDING = "pending"


@dataclass(frozen=True)
class IntentResult:
    """A freshly created payment intent."""

    intent_id: str
    client_secret: str
    amount_minor_units: int
    currency: str


@dataclass(frozen=True)
class ConfirmationResult:
    """Processor-side state of an intent after confirmation or lookup."""

    status: IntentStatus
    processor_reference_id: str
    amount_minor_units: int | None = None
    failure_reason: str | None = None
    next_action: dict | None = None
    metadata: dict = field(default_factory=dict)

    @property
    def succeeded(self) -> bool:
        return self.status is IntentStatus.SUCCEEDED


class PaymentGateway(ABC):
    """Abstract payment processor interface."""

    @abstractmethod
    def create_payment_intent(self, amount_minor_units: int, currency: str, metadata: dict) -> IntentResult:
        """Create an intent for a fixed amount. Raises PaymentGatewayError on processor failure."""
        ...

    @abstractmethod
    def confirm_card_payment(
        self,
        client_secret: str,
        payment_method: dict,
        billing_details: dict,
    ) -> ConfirmationResult:
        """Confirm an intent with the buyer's card. A decline is a result, not an exception."""
        ...

    @abstractmethod
    def retrieve_payment_intent(self, intent_id: str) -> ConfirmationResult:
        """Look up the processor's current view of an intent."""
        ...

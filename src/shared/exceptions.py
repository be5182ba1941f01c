"""Error taxonomy shared by every bounded context.

Domain code raises these; only the buyer-facing operations surface turns them
into ``{success: False, message}`` envelopes. ``code`` is the stable machine
identifier carried in the envelope.
"""


class MarketplaceError(Exception):
    """Base class for all errors the core raises on purpose."""

    code = "error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.__class__.__doc__ or self.code
        super().__init__(self.message)

    def __str__(self) -> str:
        return self.message


# ---------------------------------------------------------------------------
# Caller errors
# ---------------------------------------------------------------------------
class NotAuthenticated(MarketplaceError):
    """You must sign in to continue."""

    code = "not_authenticated"


class ObjectNotFoundError(MarketplaceError):
    """The requested record does not exist."""

    code = "not_found"


class ValidationError(MarketplaceError):
    """Input rejected before any write.

    ``messages`` maps a field name to the list of problems found with it.
    """

    code = "validation_error"

    def __init__(self, messages: dict[str, list[str]]) -> None:
        self.messages = messages
        summary = "; ".join(f"{field}: {', '.join(errors)}" for field, errors in messages.items())
        super().__init__(summary)


class InvalidAmount(ValidationError):
    code = "invalid_amount"


class MissingPrecondition(ValidationError):
    code = "missing_precondition"


# ---------------------------------------------------------------------------
# Upstream dependency errors
# ---------------------------------------------------------------------------
class UpstreamError(MarketplaceError):
    """A dependency the core relies on failed."""

    code = "upstream_error"


class DataStoreError(UpstreamError):
    """The data store rejected or failed a call."""


class PaymentGatewayError(UpstreamError):
    """The payment processor rejected or failed a call."""


# ---------------------------------------------------------------------------
# Paid-but-unrecorded errors
# ---------------------------------------------------------------------------
class OrderCommitError(MarketplaceError):
    """Payment was captured but the order could not be recorded.

    Never retried automatically; the processor reference id is kept so support
    can reconcile the charge by hand.
    """

    code = "order_commit_failed"

    def __init__(self, message: str, payment_reference_id: str) -> None:
        self.payment_reference_id = payment_reference_id
        super().__init__(message)


class OrderCreateFailed(OrderCommitError):
    code = "order_create_failed"


class OrderDetailFailed(OrderCommitError):
    code = "order_detail_failed"

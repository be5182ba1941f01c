"""Resolve the caller once per request.

The ``session`` cookie is handed to the identity provider exactly once; the
resulting ``RequestContext`` is passed explicitly to every operation.
"""

import structlog
from fastapi import Cookie

from identity.context import RequestContext
from identity.provider import get_identity_provider

SESSION_COOKIE = "session"


def get_request_context(session: str | None = Cookie(default=None)) -> RequestContext:
    structlog.contextvars.clear_contextvars()
    if not session:
        return RequestContext.anonymous()

    principal = get_identity_provider().get_current_user(session)
    if principal is None:
        return RequestContext.anonymous()

    structlog.contextvars.bind_contextvars(buyer_id=principal.user_id)
    return RequestContext(principal=principal)

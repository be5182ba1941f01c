"""Request-scoped identity.

The identity provider is consulted once per request; the resolved principal
travels explicitly into every operation inside a ``RequestContext`` instead of
being read from ambient cookie state.
"""

from dataclasses import dataclass

from shared.exceptions import NotAuthenticated


@dataclass(frozen=True)
class Principal:
    """An authenticated buyer as reported by the identity provider."""

    user_id: str
    email: str


@dataclass(frozen=True)
class RequestContext:
    principal: Principal | None = None

    @property
    def is_authenticated(self) -> bool:
        return self.principal is not None

    @property
    def buyer_id(self) -> str:
        """The caller's user id. Raises ``NotAuthenticated`` without a session."""
        if self.principal is None:
            raise NotAuthenticated()
        return self.principal.user_id

    @classmethod
    def anonymous(cls) -> "RequestContext":
        return cls(principal=None)

    @classmethod
    def for_buyer(cls, user_id: str, email: str) -> "RequestContext":
        return cls(principal=Principal(user_id=user_id, email=email))

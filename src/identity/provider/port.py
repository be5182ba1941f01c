"""Identity provider port (abstract interface).

The marketplace does not own authentication. Adapters resolve a session token
(the ``session`` cookie) to a ``Principal`` or ``None`` when the session is
missing, expired or revoked.
"""

from abc import ABC, abstractmethod

from identity.context import Principal


class IdentityProvider(ABC):
    @abstractmethod
    def get_current_user(self, session_token: str | None) -> Principal | None:
        """Return the principal behind ``session_token``, if the session is valid."""
        ...

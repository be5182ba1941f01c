"""In-memory identity provider for development and testing.

Sessions are opaque random tokens mapped to principals. ``sign_in`` issues a
token, ``sign_out`` revokes it.
"""

from secrets import token_urlsafe

from identity.context import Principal
from identity.provider.port import IdentityProvider


class FakeIdentityProvider(IdentityProvider):
    def __init__(self) -> None:
        self.sessions: dict[str, Principal] = {}

    def sign_in(self, user_id: str, email: str) -> str:
        token = token_urlsafe(24)
        self.sessions[token] = Principal(user_id=user_id, email=email)
        return token

    def sign_out(self, session_token: str) -> None:
        self.sessions.pop(session_token, None)

    def get_current_user(self, session_token: str | None) -> Principal | None:
        if not session_token:
            return None
        return self.sessions.get(session_token)

import hmac
from typing import Optional, Set

from pydantic import SecretStr

from exgate.core.interfaces.auth import ADMIN_ROLE, AuthPort


class StaticTokenAuthAdapter(AuthPort):
    """Grants the admin role to callers presenting the configured bearer token."""

    def __init__(self, admin_token: SecretStr):
        self._token = admin_token

    def resolve_roles(self, authorization: Optional[str]) -> Set[str]:
        if not authorization:
            return set()
        scheme, _, credentials = authorization.partition(" ")
        if scheme.lower() != "bearer" or not credentials:
            return set()
        expected = self._token.get_secret_value().encode("utf-8")
        if hmac.compare_digest(credentials.strip().encode("utf-8"), expected):
            return {ADMIN_ROLE}
        return set()

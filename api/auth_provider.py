"""Authentication capability used by every gallery request.

Callers never check whether authentication is configured. They ask the
provider whether it is ready and which token to send:

    if not auth.is_ready():
        return  # suppressed until the identity provider delivers a token
    headers = auth_headers(auth)

NoAuth is used when no identity provider is configured; it is always ready
and contributes no header.
"""

import logging
import time
from typing import Callable, Optional, Protocol

logger = logging.getLogger(__name__)


class AuthProvider(Protocol):
    def is_ready(self) -> bool: ...

    def token(self) -> Optional[str]: ...


class NoAuth:
    """Provider for galleries without authentication."""

    def is_ready(self) -> bool:
        return True

    def token(self) -> Optional[str]:
        return None


class BearerTokenAuth:
    """Holds a bearer token handed over by an external identity provider.

    The provider is not ready until a token has been set, and stops being ready
    once the token expires or is cleared. Listeners registered with
    on_ready() are called each time a new token makes the provider ready.
    """

    def __init__(self, token: Optional[str] = None, expires_at: Optional[float] = None,
                 clock: Callable[[], float] = time.time):
        self._token = token or None
        self._expires_at = expires_at
        self._clock = clock
        self._listeners: list[Callable[[], None]] = []

    def is_ready(self) -> bool:
        if not self._token:
            return False
        if self._expires_at is not None and self._clock() >= self._expires_at:
            return False
        return True

    def token(self) -> Optional[str]:
        return self._token if self.is_ready() else None

    def on_ready(self, listener: Callable[[], None]):
        self._listeners.append(listener)

    def set_token(self, token: str, expires_at: Optional[float] = None):
        """Store a fresh token and notify listeners."""
        self._token = token or None
        self._expires_at = expires_at
        if not self.is_ready():
            logger.warning("Received an empty or already expired token")
            return
        logger.info("Bearer token available")
        for listener in list(self._listeners):
            listener()

    def clear(self):
        self._token = None
        self._expires_at = None
        logger.info("Bearer token cleared")


def auth_headers(auth: AuthProvider) -> dict[str, str]:
    """Authorization header for the provider's current token, if any."""
    token = auth.token()
    if not token:
        return {}
    return {"Authorization": f"Bearer {token}"}

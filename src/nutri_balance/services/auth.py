"""Authentication service with user-facing error messages."""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

from nutri_balance.domain.sessions import SessionContext
from nutri_balance.errors import AuthError, ValidationError

logger = logging.getLogger(__name__)

AUTH_MESSAGES: dict[str, str] = {
    "invalid_credentials": "Invalid email or password.",
    "email_exists": "An account with this email already exists.",
    "weak_password": "Password is too weak. Use at least 6 characters.",
    "email_invalid": "Please enter a valid email address.",
}
DEFAULT_AUTH_MESSAGE = "Sign-in failed. Please try again."


class AuthProvider(Protocol):
    """Interface for an email/password identity provider."""

    def sign_in(self, email: str, password: str) -> SessionContext:
        """Authenticate and return the session identity."""

    def sign_up(self, email: str, password: str) -> SessionContext:
        """Register a new account and return the session identity."""

    def sign_out(self, session: SessionContext) -> None:
        """End the provider session."""


@dataclass
class AuthService:
    """Wraps an identity provider and localizes its failures."""

    provider: AuthProvider

    def sign_in(self, email: str, password: str) -> SessionContext:
        email, password = _require_credentials(email, password)
        return self._call("sign in", self.provider.sign_in, email, password)

    def sign_up(self, email: str, password: str) -> SessionContext:
        email, password = _require_credentials(email, password)
        return self._call("sign up", self.provider.sign_up, email, password)

    def sign_out(self, session: SessionContext) -> None:
        """Sign out; provider failures are logged, never fatal."""
        try:
            self.provider.sign_out(session)
        except Exception:
            logger.exception("Sign-out failed", extra={"user_id": session.user_id})

    def _call(
        self,
        action: str,
        method: Callable[[str, str], SessionContext],
        email: str,
        password: str,
    ) -> SessionContext:
        try:
            return method(email, password)
        except AuthError as exc:
            logger.info("Auth %s rejected: %s", action, exc.code)
            raise AuthError(exc.code, localize_auth_error(exc.code)) from exc
        except Exception as exc:
            logger.exception("Auth %s failed", action)
            raise AuthError("unknown", DEFAULT_AUTH_MESSAGE) from exc


def localize_auth_error(code: str) -> str:
    """Map a provider error code to a user-facing message."""
    return AUTH_MESSAGES.get(code, DEFAULT_AUTH_MESSAGE)


def _require_credentials(email: str, password: str) -> tuple[str, str]:
    cleaned = email.strip()
    if not cleaned or not password:
        raise ValidationError("Email and password are required.")
    return cleaned, password

"""Supabase Auth provider for email/password accounts."""

from collections.abc import Callable
from dataclasses import dataclass

from supabase import Client

from nutri_balance.domain.sessions import SessionContext
from nutri_balance.errors import AuthError
from nutri_balance.services.auth import AuthProvider

_CODE_ALIASES = {
    "invalid_credentials": "invalid_credentials",
    "invalid_grant": "invalid_credentials",
    "user_already_exists": "email_exists",
    "email_exists": "email_exists",
    "weak_password": "weak_password",
    "email_address_invalid": "email_invalid",
    "validation_failed": "email_invalid",
}


@dataclass
class SupabaseAuthProvider(AuthProvider):
    """Auth provider using a fresh Supabase client per sign-in.

    Signing in mutates the client's session, so the shared data client is
    never used for auth calls.
    """

    client_factory: Callable[[], Client]

    def sign_in(self, email: str, password: str) -> SessionContext:
        """Authenticate with email and password."""
        client = self.client_factory()
        try:
            response = client.auth.sign_in_with_password(
                {"email": email, "password": password}
            )
        except Exception as exc:
            raise _to_auth_error(exc) from exc
        return _session_from_response(response)

    def sign_up(self, email: str, password: str) -> SessionContext:
        """Register a new account."""
        client = self.client_factory()
        try:
            response = client.auth.sign_up({"email": email, "password": password})
        except Exception as exc:
            raise _to_auth_error(exc) from exc
        return _session_from_response(response)

    def sign_out(self, session: SessionContext) -> None:
        """Revoke the user's refresh tokens when an access token is known."""
        if not session.access_token:
            return
        client = self.client_factory()
        client.auth.admin.sign_out(session.access_token)


def _session_from_response(response: object) -> SessionContext:
    user = getattr(response, "user", None)
    if user is None:
        raise AuthError("invalid_credentials", "No user returned by Supabase")
    auth_session = getattr(response, "session", None)
    return SessionContext(
        user_id=str(user.id),
        email=getattr(user, "email", None),
        access_token=getattr(auth_session, "access_token", None),
    )


def _to_auth_error(exc: Exception) -> AuthError:
    raw_code = getattr(exc, "code", None)
    code = _CODE_ALIASES.get(str(raw_code), "unknown") if raw_code else "unknown"
    return AuthError(code, str(exc))

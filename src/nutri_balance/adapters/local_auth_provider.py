"""Email/password accounts kept in the local key/value store."""

import base64
import hashlib
import hmac
import json
import os
import uuid
from dataclasses import dataclass

from nutri_balance.adapters.local_storage import KEY_PREFIX, LocalKeyValueStore
from nutri_balance.domain.sessions import SessionContext
from nutri_balance.errors import AuthError
from nutri_balance.services.auth import AuthProvider

ACCOUNTS_KEY = f"{KEY_PREFIX}:accounts"
MIN_PASSWORD_LENGTH = 6

_PBKDF2_ALG = "sha256"
_PBKDF2_ITERATIONS = 200_000


def hash_password(password: str) -> str:
    salt = os.urandom(16)
    dk = hashlib.pbkdf2_hmac(
        _PBKDF2_ALG, password.encode("utf-8"), salt, _PBKDF2_ITERATIONS
    )
    salt_b64 = base64.urlsafe_b64encode(salt).decode("ascii")
    dk_b64 = base64.urlsafe_b64encode(dk).decode("ascii")
    return f"pbkdf2_{_PBKDF2_ALG}${_PBKDF2_ITERATIONS}${salt_b64}${dk_b64}"


def verify_password(password: str, password_hash: str) -> bool:
    try:
        scheme, iter_s, salt_b64, dk_b64 = password_hash.split("$", 3)
        alg = scheme.split("_", 1)[1]
        salt = base64.urlsafe_b64decode(salt_b64)
        expected = base64.urlsafe_b64decode(dk_b64)
        actual = hashlib.pbkdf2_hmac(
            alg, password.encode("utf-8"), salt, int(iter_s)
        )
    except (ValueError, IndexError):
        return False
    return hmac.compare_digest(actual, expected)


@dataclass
class LocalAuthProvider(AuthProvider):
    """Auth provider for the offline storage backend."""

    store: LocalKeyValueStore

    def sign_in(self, email: str, password: str) -> SessionContext:
        account = self._accounts().get(email.lower())
        if account is None or not verify_password(
            password, str(account.get("password_hash", ""))
        ):
            raise AuthError("invalid_credentials", "Invalid email or password")
        return SessionContext(user_id=str(account["user_id"]), email=email.lower())

    def sign_up(self, email: str, password: str) -> SessionContext:
        normalized = email.lower()
        if "@" not in normalized or normalized.startswith("@"):
            raise AuthError("email_invalid", "Email address is invalid")
        if len(password) < MIN_PASSWORD_LENGTH:
            raise AuthError("weak_password", "Password is too short")
        accounts = self._accounts()
        if normalized in accounts:
            raise AuthError("email_exists", "Email already registered")
        user_id = uuid.uuid4().hex
        accounts[normalized] = {
            "user_id": user_id,
            "password_hash": hash_password(password),
        }
        self.store.set_item(ACCOUNTS_KEY, json.dumps(accounts))
        return SessionContext(user_id=user_id, email=normalized)

    def sign_out(self, session: SessionContext) -> None:
        """Local sessions hold no provider state."""

    def _accounts(self) -> dict[str, dict[str, object]]:
        raw = self.store.get_item(ACCOUNTS_KEY)
        if not raw:
            return {}
        data = json.loads(raw)
        return data if isinstance(data, dict) else {}

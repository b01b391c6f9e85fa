"""Registry of signed-in sessions keyed by opaque bearer tokens."""

import logging
import secrets
import time
from collections.abc import Callable
from dataclasses import dataclass, field

from nutri_balance.services.views import ViewController

logger = logging.getLogger(__name__)

DEFAULT_SESSION_TTL_SECONDS = 7 * 24 * 60 * 60


@dataclass
class _Issued:
    controller: ViewController
    issued_at: float


@dataclass
class SessionRegistry:
    """Creates a view controller per sign-in and resolves it by token.

    Tokens expire ``ttl_seconds`` after they were issued; expired sessions are
    dropped whenever the registry is consulted.
    """

    controller_factory: Callable[[], ViewController]
    ttl_seconds: float = DEFAULT_SESSION_TTL_SECONDS
    clock: Callable[[], float] = time.monotonic
    _sessions: dict[str, _Issued] = field(default_factory=dict)

    def sign_in(self, email: str, password: str) -> tuple[str, ViewController]:
        controller = self.controller_factory()
        controller.sign_in(email, password)
        return self._register(controller), controller

    def sign_up(self, email: str, password: str) -> tuple[str, ViewController]:
        controller = self.controller_factory()
        controller.sign_up(email, password)
        return self._register(controller), controller

    def get(self, token: str) -> ViewController | None:
        self.prune()
        issued = self._sessions.get(token)
        return issued.controller if issued else None

    def sign_out(self, token: str) -> bool:
        """Sign the session out; returns False for unknown or expired tokens."""
        self.prune()
        issued = self._sessions.pop(token, None)
        if issued is None:
            return False
        issued.controller.sign_out()
        return True

    def prune(self) -> int:
        """Drop expired sessions and return how many were removed."""
        now = self.clock()
        expired = [
            token
            for token, issued in self._sessions.items()
            if now - issued.issued_at >= self.ttl_seconds
        ]
        for token in expired:
            issued = self._sessions.pop(token)
            if issued.controller.session is not None:
                logger.info(
                    "Session expired",
                    extra={"user_id": issued.controller.session.user_id},
                )
        return len(expired)

    def __len__(self) -> int:
        return len(self._sessions)

    def _register(self, controller: ViewController) -> str:
        self.prune()
        token = secrets.token_urlsafe(32)
        self._sessions[token] = _Issued(controller=controller, issued_at=self.clock())
        if controller.session is not None:
            logger.info(
                "Session started", extra={"user_id": controller.session.user_id}
            )
        return token

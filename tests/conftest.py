"""Shared test fixtures."""

from dataclasses import dataclass, field
from uuid import uuid4

import pytest

from nutri_balance.config import Settings
from nutri_balance.containers import AppContainer, controller_factory
from nutri_balance.domain.logs import LogEntry
from nutri_balance.domain.profile import Profile
from nutri_balance.domain.sessions import SessionContext
from nutri_balance.errors import AuthError
from nutri_balance.services.analysis import AnalysisClient, AnalysisService
from nutri_balance.services.auth import AuthProvider, AuthService
from nutri_balance.services.logs import LogRepository, LogService
from nutri_balance.services.profiles import ProfileRepository, ProfileService
from nutri_balance.services.registry import SessionRegistry
from nutri_balance.services.views import ViewController

FOOD_PAYLOAD: dict[str, object] = {
    "name": "Grilled chicken with rice",
    "estimated_calories": 500,
    "macros": {"protein": "40g", "carbs": "55g", "fat": "12g"},
    "confidence": "High",
    "summary": "A balanced plate.",
}

WORKOUT_PAYLOAD: dict[str, object] = {
    "workout_type": "Running",
    "calories_burned": 300,
    "intensity": "Moderate",
    "summary": "Steady 30 minute run.",
}


@dataclass
class InMemoryProfileRepository(ProfileRepository):
    """In-memory profile repository for tests."""

    profiles: dict[str, Profile] = field(default_factory=dict)
    fail_reads: bool = False
    fail_writes: bool = False

    def get_profile(self, user_id: str) -> Profile | None:
        if self.fail_reads:
            raise RuntimeError("store offline")
        return self.profiles.get(user_id)

    def save_profile(self, user_id: str, profile: Profile) -> None:
        if self.fail_writes:
            raise RuntimeError("store offline")
        self.profiles[user_id] = profile


@dataclass
class InMemoryLogRepository(LogRepository):
    """In-memory log repository for tests."""

    logs: dict[str, dict[str, LogEntry]] = field(default_factory=dict)
    fail_writes: bool = False
    fail_reads: bool = False
    ranges: list[tuple[int, int]] = field(default_factory=list)

    def append_log(self, user_id: str, entry: LogEntry) -> None:
        if self.fail_writes:
            raise RuntimeError("store offline")
        self.logs.setdefault(user_id, {})[entry.id] = entry

    def list_logs(self, user_id: str) -> list[LogEntry]:
        if self.fail_reads:
            raise RuntimeError("store offline")
        return sorted(
            self.logs.get(user_id, {}).values(), key=lambda entry: entry.timestamp_ms
        )

    def list_logs_between(
        self, user_id: str, start_ms: int, end_ms: int
    ) -> list[LogEntry]:
        self.ranges.append((start_ms, end_ms))
        return [
            entry
            for entry in self.list_logs(user_id)
            if start_ms <= entry.timestamp_ms < end_ms
        ]

    def delete_log(self, user_id: str, log_id: str) -> None:
        self.logs.get(user_id, {}).pop(log_id, None)


@dataclass
class FakeAuthProvider(AuthProvider):
    """Fake identity provider with a fixed account table."""

    accounts: dict[str, tuple[str, str]] = field(default_factory=dict)
    signed_out: list[str] = field(default_factory=list)

    def sign_in(self, email: str, password: str) -> SessionContext:
        account = self.accounts.get(email)
        if account is None or account[1] != password:
            raise AuthError("invalid_credentials", "bad credentials")
        return SessionContext(user_id=account[0], email=email)

    def sign_up(self, email: str, password: str) -> SessionContext:
        if email in self.accounts:
            raise AuthError("email_exists", "exists")
        if len(password) < 6:
            raise AuthError("weak_password", "weak")
        user_id = uuid4().hex
        self.accounts[email] = (user_id, password)
        return SessionContext(user_id=user_id, email=email)

    def sign_out(self, session: SessionContext) -> None:
        self.signed_out.append(session.user_id)


@dataclass
class FakeAnalysisClient(AnalysisClient):
    """Fake analysis client returning payloads keyed by schema name."""

    payloads: dict[str, object] = field(
        default_factory=lambda: {
            "food_analysis": FOOD_PAYLOAD,
            "workout_analysis": WORKOUT_PAYLOAD,
        }
    )
    error: Exception | None = None
    calls: list[dict[str, object]] = field(default_factory=list)

    async def generate(  # noqa: PLR0913
        self,
        *,
        model: str,
        reasoning_effort: str | None,
        store: bool,
        parts: list[dict[str, object]],
        schema: dict[str, object],
        schema_name: str,
    ) -> dict[str, object]:
        self.calls.append({"model": model, "parts": parts, "schema_name": schema_name})
        if self.error is not None:
            raise self.error
        return self.payloads[schema_name]  # type: ignore[return-value]


@pytest.fixture
def settings() -> Settings:
    return Settings(
        storage_backend="local",
        openai_api_key="openai-key",
        environment="test",
    )


@pytest.fixture
def profile_repository() -> InMemoryProfileRepository:
    return InMemoryProfileRepository()


@pytest.fixture
def log_repository() -> InMemoryLogRepository:
    return InMemoryLogRepository()


@pytest.fixture
def auth_provider() -> FakeAuthProvider:
    return FakeAuthProvider(accounts={"ana@example.com": ("user-1", "secret1")})


@pytest.fixture
def analysis_client() -> FakeAnalysisClient:
    return FakeAnalysisClient()


@pytest.fixture
def container(
    settings: Settings,
    profile_repository: InMemoryProfileRepository,
    log_repository: InMemoryLogRepository,
    auth_provider: FakeAuthProvider,
    analysis_client: FakeAnalysisClient,
) -> AppContainer:
    auth_service = AuthService(auth_provider)
    profile_service = ProfileService(profile_repository)
    log_service = LogService(log_repository)
    analysis_service = AnalysisService(client=analysis_client, model="gpt-test")
    session_registry = SessionRegistry(
        controller_factory=controller_factory(
            settings, auth_service, profile_service, log_service, analysis_service
        )
    )

    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        auth_service=auth_service,
        profile_service=profile_service,
        log_service=log_service,
        analysis_service=analysis_service,
        session_registry=session_registry,
        close_resources=close_resources,
    )


@pytest.fixture
def controller(container: AppContainer) -> ViewController:
    return container.session_registry.controller_factory()

"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from supabase import create_client

from nutri_balance.adapters.local_auth_provider import LocalAuthProvider
from nutri_balance.adapters.local_storage import (
    LocalKeyValueStore,
    LocalLogRepository,
    LocalProfileRepository,
)
from nutri_balance.adapters.openai_analysis_client import OpenAIAnalysisClient
from nutri_balance.adapters.supabase_auth_provider import SupabaseAuthProvider
from nutri_balance.adapters.supabase_log_repository import SupabaseLogRepository
from nutri_balance.adapters.supabase_profile_repository import (
    SupabaseProfileRepository,
)
from nutri_balance.config import Settings, resolve_storage_backend
from nutri_balance.services.analysis import AnalysisService
from nutri_balance.services.auth import AuthProvider, AuthService
from nutri_balance.services.logs import LogRepository, LogService
from nutri_balance.services.profiles import ProfileRepository, ProfileService
from nutri_balance.services.registry import SessionRegistry
from nutri_balance.services.views import ViewController


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    auth_service: AuthService
    profile_service: ProfileService
    log_service: LogService
    analysis_service: AnalysisService
    session_registry: SessionRegistry
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    backend = resolve_storage_backend(resolved_settings)
    auth_provider: AuthProvider
    profile_repository: ProfileRepository
    log_repository: LogRepository
    if backend == "supabase":
        supabase_url = str(resolved_settings.supabase_url)
        supabase_key = str(resolved_settings.supabase_key)
        supabase_client = create_client(supabase_url, supabase_key)
        profile_repository = SupabaseProfileRepository(supabase_client)
        log_repository = SupabaseLogRepository(supabase_client)
        auth_provider = SupabaseAuthProvider(
            client_factory=lambda: create_client(supabase_url, supabase_key)
        )
    else:
        store = LocalKeyValueStore.create(resolved_settings.local_store_path)
        profile_repository = LocalProfileRepository(store)
        log_repository = LocalLogRepository(store)
        auth_provider = LocalAuthProvider(store)

    openai_client = OpenAIAnalysisClient.create(
        resolved_settings.openai_api_key,
        timeout_seconds=resolved_settings.openai_timeout_seconds,
    )
    analysis_service = AnalysisService(
        client=openai_client,
        model=resolved_settings.openai_model,
        reasoning_effort=resolved_settings.openai_reasoning_effort,
        store=resolved_settings.openai_store,
    )
    auth_service = AuthService(auth_provider)
    profile_service = ProfileService(profile_repository)
    log_service = LogService(log_repository)
    session_registry = SessionRegistry(
        controller_factory=controller_factory(
            resolved_settings,
            auth_service,
            profile_service,
            log_service,
            analysis_service,
        ),
        ttl_seconds=resolved_settings.session_ttl_days * 24 * 60 * 60,
    )

    async def close_resources() -> None:
        await openai_client.close()

    return AppContainer(
        settings=resolved_settings,
        auth_service=auth_service,
        profile_service=profile_service,
        log_service=log_service,
        analysis_service=analysis_service,
        session_registry=session_registry,
        close_resources=close_resources,
    )


def controller_factory(
    settings: Settings,
    auth_service: AuthService,
    profile_service: ProfileService,
    log_service: LogService,
    analysis_service: AnalysisService,
) -> Callable[[], ViewController]:
    """Return a factory producing one view controller per session."""

    def create() -> ViewController:
        return ViewController(
            auth_service=auth_service,
            profile_service=profile_service,
            log_service=log_service,
            analysis_service=analysis_service,
            timezone_name=settings.default_timezone,
            debug_errors=settings.environment == "local",
        )

    return create

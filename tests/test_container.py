"""Tests for container wiring."""

import asyncio
from pathlib import Path

import pytest

from nutri_balance.adapters.local_storage import LocalLogRepository
from nutri_balance.config import Settings, resolve_storage_backend
from nutri_balance.containers import build_container
from nutri_balance.domain.sessions import View


def test_build_container_local_backend(settings: Settings, tmp_path: Path) -> None:
    local_settings = settings.model_copy(
        update={"local_store_path": str(tmp_path / "store.json")}
    )
    container = build_container(local_settings)

    assert isinstance(container.log_service.repository, LocalLogRepository)
    token, controller = container.session_registry.sign_up(
        "ana@example.com", "secret1"
    )
    assert container.session_registry.get(token) is controller
    assert controller.view == View.DASHBOARD
    assert (tmp_path / "store.json").exists()
    asyncio.run(container.close_resources())


def test_supabase_backend_requires_credentials(settings: Settings) -> None:
    supabase_settings = settings.model_copy(update={"storage_backend": "supabase"})

    with pytest.raises(ValueError):
        resolve_storage_backend(supabase_settings)


def test_unknown_backend_rejected(settings: Settings) -> None:
    with pytest.raises(ValueError):
        resolve_storage_backend(settings.model_copy(update={"storage_backend": "s3"}))

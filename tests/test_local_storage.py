"""Tests for the device-local storage backend."""

import json
from pathlib import Path

import pytest

from nutri_balance.adapters.local_auth_provider import (
    LocalAuthProvider,
    hash_password,
    verify_password,
)
from nutri_balance.adapters.local_storage import (
    LocalKeyValueStore,
    LocalLogRepository,
    LocalProfileRepository,
    logs_key,
    stats_key,
)
from nutri_balance.domain.logs import FoodEntry, Macros, WorkoutEntry
from nutri_balance.domain.profile import Profile
from nutri_balance.errors import AuthError


@pytest.fixture
def store(tmp_path: Path) -> LocalKeyValueStore:
    return LocalKeyValueStore.create(tmp_path / "nested" / "store.json")


def test_store_persists_across_instances(store: LocalKeyValueStore) -> None:
    store.set_item("a", "1")

    reopened = LocalKeyValueStore.create(store.path)

    assert reopened.get_item("a") == "1"
    reopened.remove_item("a")
    assert store.get_item("a") is None


def test_store_rejects_corrupt_file(tmp_path: Path) -> None:
    path = tmp_path / "store.json"
    path.write_text("[1, 2]", encoding="utf-8")

    with pytest.raises(RuntimeError):
        LocalKeyValueStore.create(path).get_item("a")


def test_profile_uses_stats_key_and_merges(store: LocalKeyValueStore) -> None:
    store.set_item(stats_key("u1"), json.dumps({"goal": "cut", "weight": 60}))
    repository = LocalProfileRepository(store)

    assert repository.get_profile("u1") == Profile(weight=60)
    repository.save_profile("u1", Profile(weight=65, height=168, basal_rate=1500))

    raw = json.loads(store.get_item(stats_key("u1")) or "{}")
    assert raw == {"goal": "cut", "weight": 65, "height": 168, "basal_rate": 1500}
    assert repository.get_profile("missing") is None


def test_logs_are_kept_oldest_first(store: LocalKeyValueStore) -> None:
    repository = LocalLogRepository(store)
    late = WorkoutEntry(
        id="2000", timestamp_ms=2000, description="Swim", calories_burned=250,
        duration_minutes=40,
    )
    early = FoodEntry(
        id="1000", timestamp_ms=1000, description="Porridge", calories=320,
        macros=Macros(protein="10g", carbs="50g", fat="6g"),
    )

    repository.append_log("u1", late)
    repository.append_log("u1", early)

    assert repository.list_logs("u1") == [early, late]
    stored = json.loads(store.get_item(logs_key("u1")) or "[]")
    assert [row["id"] for row in stored] == ["1000", "2000"]


def test_log_overwrite_and_idempotent_delete(store: LocalKeyValueStore) -> None:
    repository = LocalLogRepository(store)
    repository.append_log(
        "u1", FoodEntry(id="1", timestamp_ms=1, description="Tea", calories=5)
    )
    repository.append_log(
        "u1", FoodEntry(id="1", timestamp_ms=1, description="Latte", calories=120)
    )

    assert [entry.description for entry in repository.list_logs("u1")] == ["Latte"]

    repository.delete_log("u1", "1")
    repository.delete_log("u1", "1")

    assert repository.list_logs("u1") == []


def test_password_hash_roundtrip() -> None:
    password_hash = hash_password("hunter22")

    assert password_hash.startswith("pbkdf2_sha256$")
    assert verify_password("hunter22", password_hash)
    assert not verify_password("hunter23", password_hash)
    assert not verify_password("hunter22", "garbage")


def test_local_auth_sign_up_then_sign_in(store: LocalKeyValueStore) -> None:
    provider = LocalAuthProvider(store)

    created = provider.sign_up("Ana@Example.com", "secret1")
    session = provider.sign_in("ana@example.com", "secret1")

    assert session.user_id == created.user_id
    assert session.email == "ana@example.com"


@pytest.mark.parametrize(
    ("email", "password", "code"),
    [
        ("not-an-email", "secret1", "email_invalid"),
        ("ana@example.com", "123", "weak_password"),
    ],
)
def test_local_auth_sign_up_rejections(
    store: LocalKeyValueStore, email: str, password: str, code: str
) -> None:
    with pytest.raises(AuthError) as excinfo:
        LocalAuthProvider(store).sign_up(email, password)

    assert excinfo.value.code == code


def test_local_auth_duplicate_and_bad_password(store: LocalKeyValueStore) -> None:
    provider = LocalAuthProvider(store)
    provider.sign_up("ana@example.com", "secret1")

    with pytest.raises(AuthError) as duplicate:
        provider.sign_up("ANA@example.com", "secret2")
    with pytest.raises(AuthError) as wrong:
        provider.sign_in("ana@example.com", "secret2")

    assert duplicate.value.code == "email_exists"
    assert wrong.value.code == "invalid_credentials"


def test_logs_between_is_half_open(store: LocalKeyValueStore) -> None:
    repository = LocalLogRepository(store)
    for timestamp in (999, 1000, 1999, 2000):
        repository.append_log(
            "u1",
            FoodEntry(
                id=str(timestamp), timestamp_ms=timestamp, description="Nuts",
                calories=10,
            ),
        )

    logs = repository.list_logs_between("u1", 1000, 2000)

    assert [entry.id for entry in logs] == ["1000", "1999"]

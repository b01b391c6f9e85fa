"""Device-local storage backed by a single JSON file of string values."""

import json
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path

from nutri_balance.domain.logs import LogEntry, entry_from_document, entry_to_document
from nutri_balance.domain.profile import Profile
from nutri_balance.services.logs import LogRepository
from nutri_balance.services.profiles import ProfileRepository

KEY_PREFIX = "nutribalance"


def logs_key(user_id: str) -> str:
    return f"{KEY_PREFIX}:{user_id}:logs"


def stats_key(user_id: str) -> str:
    return f"{KEY_PREFIX}:{user_id}:stats"


@dataclass
class LocalKeyValueStore:
    """String key/value store persisted wholesale to a JSON file."""

    path: Path

    @classmethod
    def create(cls, path: str | Path) -> "LocalKeyValueStore":
        return cls(path=Path(path))

    def get_item(self, key: str) -> str | None:
        return self._read().get(key)

    def set_item(self, key: str, value: str) -> None:
        items = self._read()
        items[key] = value
        self._write(items)

    def remove_item(self, key: str) -> None:
        items = self._read()
        if items.pop(key, None) is not None:
            self._write(items)

    def _read(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        with self.path.open(encoding="utf-8") as handle:
            data = json.load(handle)
        if not isinstance(data, dict):
            raise RuntimeError(f"Corrupt local store: {self.path}")
        return {str(key): str(value) for key, value in data.items()}

    def _write(self, items: dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(items, handle, indent=2, sort_keys=True)
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise


@dataclass
class LocalProfileRepository(ProfileRepository):
    """Profile stored as one serialized value per user."""

    store: LocalKeyValueStore

    def get_profile(self, user_id: str) -> Profile | None:
        raw = self.store.get_item(stats_key(user_id))
        if raw is None:
            return None
        data = json.loads(raw)
        if not isinstance(data, dict):
            return None
        return Profile.from_document(data)

    def save_profile(self, user_id: str, profile: Profile) -> None:
        """Merge profile fields into any existing stats value."""
        key = stats_key(user_id)
        raw = self.store.get_item(key)
        current = json.loads(raw) if raw else {}
        if not isinstance(current, dict):
            current = {}
        current.update(profile.to_document())
        self.store.set_item(key, json.dumps(current))


@dataclass
class LocalLogRepository(LogRepository):
    """Log list stored as one serialized value per user, oldest first."""

    store: LocalKeyValueStore

    def append_log(self, user_id: str, entry: LogEntry) -> None:
        documents = [
            row for row in self._load(user_id) if str(row.get("id")) != entry.id
        ]
        documents.append(entry_to_document(entry))
        documents.sort(key=lambda row: int(row.get("timestamp_ms") or 0))
        self.store.set_item(logs_key(user_id), json.dumps(documents))

    def list_logs(self, user_id: str) -> list[LogEntry]:
        return [entry_from_document(row) for row in self._load(user_id)]

    def list_logs_between(
        self, user_id: str, start_ms: int, end_ms: int
    ) -> list[LogEntry]:
        return [
            entry
            for entry in self.list_logs(user_id)
            if start_ms <= entry.timestamp_ms < end_ms
        ]

    def delete_log(self, user_id: str, log_id: str) -> None:
        documents = self._load(user_id)
        remaining = [row for row in documents if str(row.get("id")) != log_id]
        if len(remaining) != len(documents):
            self.store.set_item(logs_key(user_id), json.dumps(remaining))

    def _load(self, user_id: str) -> list[dict[str, object]]:
        raw = self.store.get_item(logs_key(user_id))
        if not raw:
            return []
        data = json.loads(raw)
        if not isinstance(data, list):
            raise RuntimeError(f"Corrupt log list for user {user_id}")
        return [row for row in data if isinstance(row, dict)]

"""Log entry service and live log feed."""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Protocol
from zoneinfo import ZoneInfo

from nutri_balance.domain.logs import LogEntry, local_day
from nutri_balance.services.persistence import persistence_errors

logger = logging.getLogger(__name__)

LogCallback = Callable[[list[LogEntry]], None]
Unsubscribe = Callable[[], None]


class LogRepository(Protocol):
    """Persistence interface for log entries."""

    def append_log(self, user_id: str, entry: LogEntry) -> None:
        """Store an entry, overwriting any entry with the same id."""

    def list_logs(self, user_id: str) -> list[LogEntry]:
        """Return all entries for the user, oldest first."""

    def list_logs_between(
        self, user_id: str, start_ms: int, end_ms: int
    ) -> list[LogEntry]:
        """Return entries with ``start_ms <= timestamp_ms < end_ms``, oldest first."""

    def delete_log(self, user_id: str, log_id: str) -> None:
        """Delete an entry by id; missing ids are ignored."""


@dataclass
class LogFeed:
    """In-process push channel for per-user log list changes."""

    _subscribers: dict[str, list[LogCallback]] = field(default_factory=dict)

    def add(self, user_id: str, callback: LogCallback) -> Unsubscribe:
        callbacks = self._subscribers.setdefault(user_id, [])
        callbacks.append(callback)

        def unsubscribe() -> None:
            current = self._subscribers.get(user_id, [])
            if callback in current:
                current.remove(callback)
            if not current:
                self._subscribers.pop(user_id, None)

        return unsubscribe

    def has_subscribers(self, user_id: str) -> bool:
        return bool(self._subscribers.get(user_id))

    def publish(self, user_id: str, logs: list[LogEntry]) -> None:
        """Deliver a snapshot to every subscriber of the user."""
        for callback in list(self._subscribers.get(user_id, [])):
            try:
                callback(list(logs))
            except Exception:
                logger.exception(
                    "Log subscriber callback failed", extra={"user_id": user_id}
                )


@dataclass
class LogService:
    """Service for appending, listing and deleting log entries."""

    repository: LogRepository
    feed: LogFeed = field(default_factory=LogFeed)

    def append_log(self, user_id: str, entry: LogEntry) -> None:
        """Persist an entry and notify subscribers."""
        with persistence_errors("append log", user_id=user_id, log_id=entry.id):
            self.repository.append_log(user_id, entry)
        self._notify(user_id)

    def list_logs(self, user_id: str) -> list[LogEntry]:
        """Return every entry for the user, oldest first."""
        with persistence_errors("list logs", user_id=user_id):
            logs = self.repository.list_logs(user_id)
        return sorted(logs, key=lambda entry: entry.timestamp_ms)

    def list_today_logs(
        self,
        user_id: str,
        timezone_name: str,
        now: datetime | None = None,
        newest_first: bool = False,
    ) -> list[LogEntry]:
        """Return entries of the current local day.

        Day membership floors each timestamp to local midnight in
        ``timezone_name``. Oldest first unless ``newest_first`` is set.
        """
        start_ms, end_ms = day_bounds_ms(timezone_name, now)
        with persistence_errors("list today logs", user_id=user_id):
            logs = self.repository.list_logs_between(user_id, start_ms, end_ms)
        today = filter_day(logs, timezone_name, now)
        if newest_first:
            today.reverse()
        return today

    def delete_log(self, user_id: str, log_id: str) -> None:
        """Delete an entry; deleting a missing id is a no-op."""
        with persistence_errors("delete log", user_id=user_id, log_id=log_id):
            self.repository.delete_log(user_id, log_id)
        self._notify(user_id)

    def subscribe(self, user_id: str, callback: LogCallback) -> Unsubscribe:
        """Push the ascending log list now and after every change."""
        unsubscribe = self.feed.add(user_id, callback)
        try:
            logs = self.list_logs(user_id)
        except Exception:
            logger.exception(
                "Initial log snapshot failed; subscription stays open",
                extra={"user_id": user_id},
            )
            return unsubscribe
        try:
            callback(logs)
        except Exception:
            logger.exception(
                "Log subscriber callback failed", extra={"user_id": user_id}
            )
        return unsubscribe

    def _notify(self, user_id: str) -> None:
        if not self.feed.has_subscribers(user_id):
            return
        try:
            logs = self.list_logs(user_id)
        except Exception:
            logger.exception(
                "Failed to refresh log subscribers", extra={"user_id": user_id}
            )
            return
        self.feed.publish(user_id, logs)


def filter_day(
    logs: list[LogEntry], timezone_name: str, now: datetime | None = None
) -> list[LogEntry]:
    """Return entries on the same local day as ``now``, oldest first."""
    tz = ZoneInfo(timezone_name)
    current = now.astimezone(tz) if now else datetime.now(tz=tz)
    today = current.replace(hour=0, minute=0, second=0, microsecond=0)
    return sorted(
        (entry for entry in logs if local_day(entry.timestamp_ms, tz) == today),
        key=lambda entry: entry.timestamp_ms,
    )


def day_bounds_ms(
    timezone_name: str, now: datetime | None = None
) -> tuple[int, int]:
    """Return epoch millis of local midnight today and tomorrow."""
    tz = ZoneInfo(timezone_name)
    current = now.astimezone(tz) if now else datetime.now(tz=tz)
    start = current.replace(hour=0, minute=0, second=0, microsecond=0)
    end = start + timedelta(days=1)
    return int(start.timestamp()) * 1000, int(end.timestamp()) * 1000

"""Supabase repository for log entries."""

from dataclasses import dataclass

from supabase import Client

from nutri_balance.domain.logs import LogEntry, entry_from_document, entry_to_document
from nutri_balance.services.logs import LogRepository

_COLUMNS = (
    "id, kind, timestamp_ms, description, calories, macros, calories_burned, "
    "duration_minutes, image_ref"
)


@dataclass
class SupabaseLogRepository(LogRepository):
    """Supabase implementation for log entries keyed by (user_id, id)."""

    client: Client
    table_name: str = "log_entries"

    def append_log(self, user_id: str, entry: LogEntry) -> None:
        """Upsert the entry so a retried write with the same id overwrites."""
        payload = {"user_id": user_id, **entry_to_document(entry)}
        response = (
            self.client.table(self.table_name)
            .upsert(payload, on_conflict="user_id,id")
            .execute()
        )
        if not response.data:
            raise RuntimeError("Failed to append log entry")

    def list_logs(self, user_id: str) -> list[LogEntry]:
        """Return a user's entries ordered by timestamp ascending."""
        response = (
            self.client.table(self.table_name)
            .select(_COLUMNS)
            .eq("user_id", user_id)
            .order("timestamp_ms", desc=False)
            .execute()
        )
        return [entry_from_document(row) for row in response.data or []]

    def list_logs_between(
        self, user_id: str, start_ms: int, end_ms: int
    ) -> list[LogEntry]:
        """Return entries in ``[start_ms, end_ms)`` ordered by timestamp."""
        response = (
            self.client.table(self.table_name)
            .select(_COLUMNS)
            .eq("user_id", user_id)
            .gte("timestamp_ms", start_ms)
            .lt("timestamp_ms", end_ms)
            .order("timestamp_ms", desc=False)
            .execute()
        )
        return [entry_from_document(row) for row in response.data or []]

    def delete_log(self, user_id: str, log_id: str) -> None:
        """Delete an entry; no rows matched is not an error."""
        self.client.table(self.table_name).delete().eq("user_id", user_id).eq(
            "id", log_id
        ).execute()

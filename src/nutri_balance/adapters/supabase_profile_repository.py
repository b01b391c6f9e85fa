"""Supabase repository for user profiles."""

from dataclasses import dataclass
from datetime import UTC, datetime

from supabase import Client

from nutri_balance.domain.profile import Profile
from nutri_balance.services.profiles import ProfileRepository


@dataclass
class SupabaseProfileRepository(ProfileRepository):
    """Supabase implementation for profiles, one row per user."""

    client: Client
    table_name: str = "profiles"

    def get_profile(self, user_id: str) -> Profile | None:
        """Return the stored profile for a user."""
        response = (
            self.client.table(self.table_name)
            .select("weight, height, basal_rate")
            .eq("user_id", user_id)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return Profile.from_document(response.data[0])

    def save_profile(self, user_id: str, profile: Profile) -> None:
        """Upsert profile columns, leaving other columns of the row untouched."""
        payload = {
            "user_id": user_id,
            **profile.to_document(),
            "updated_at": datetime.now(tz=UTC).isoformat(),
        }
        response = (
            self.client.table(self.table_name)
            .upsert(payload, on_conflict="user_id")
            .execute()
        )
        if not response.data:
            raise RuntimeError("Failed to save profile")

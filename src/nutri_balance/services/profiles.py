"""Profile service."""

import logging
from dataclasses import dataclass
from typing import Protocol

from nutri_balance.domain.profile import Profile
from nutri_balance.services.persistence import persistence_errors

logger = logging.getLogger(__name__)


class ProfileRepository(Protocol):
    """Persistence interface for user profiles."""

    def get_profile(self, user_id: str) -> Profile | None:
        """Return the stored profile, if present."""

    def save_profile(self, user_id: str, profile: Profile) -> None:
        """Upsert the user's profile."""


@dataclass
class ProfileService:
    """Service for reading and editing body statistics."""

    repository: ProfileRepository

    def get_profile(self, user_id: str) -> Profile:
        """Return the stored profile or the defaults when absent or unreadable."""
        try:
            stored = self.repository.get_profile(user_id)
        except Exception:
            logger.exception("Failed to load profile", extra={"user_id": user_id})
            return Profile()
        return stored or Profile()

    def save_profile(self, user_id: str, profile: Profile) -> None:
        """Validate and persist a profile."""
        profile.validate()
        with persistence_errors("save profile", user_id=user_id):
            self.repository.save_profile(user_id, profile)

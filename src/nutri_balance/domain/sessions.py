"""Domain models for signed-in sessions and screen state."""

from dataclasses import dataclass
from enum import StrEnum


@dataclass(frozen=True)
class SessionContext:
    """Identity of the signed-in user, passed explicitly to collaborators."""

    user_id: str
    email: str | None = None
    access_token: str | None = None


class View(StrEnum):
    """Top-level screens."""

    LOGGED_OUT = "logged_out"
    DASHBOARD = "dashboard"
    FOOD_ENTRY = "food_entry"
    WORKOUT_ENTRY = "workout_entry"
    SETTINGS = "settings"


class EntryPhase(StrEnum):
    """Inner phase of the food and workout entry screens."""

    COMPOSE = "compose"
    REVIEW = "review"

"""Domain models for food and workout log entries."""

from dataclasses import dataclass
from datetime import datetime
from typing import Literal
from zoneinfo import ZoneInfo

from nutri_balance.errors import PersistenceError


@dataclass(frozen=True)
class Macros:
    """Macronutrient breakdown as reported by the model, e.g. ``"20g"``."""

    protein: str
    carbs: str
    fat: str


@dataclass(frozen=True)
class FoodEntry:
    """A recorded food intake."""

    id: str
    timestamp_ms: int
    description: str
    calories: float
    macros: Macros | None = None
    image_ref: str | None = None
    kind: Literal["food"] = "food"


@dataclass(frozen=True)
class WorkoutEntry:
    """A recorded workout."""

    id: str
    timestamp_ms: int
    description: str
    calories_burned: float
    duration_minutes: float | None = None
    image_ref: str | None = None
    kind: Literal["workout"] = "workout"


LogEntry = FoodEntry | WorkoutEntry


def new_entry_id(timestamp_ms: int) -> str:
    """Derive the entry id from its creation timestamp."""
    return str(timestamp_ms)


def now_ms() -> int:
    return int(datetime.now().timestamp() * 1000)


def local_day(timestamp_ms: int, tz: ZoneInfo) -> datetime:
    """Return local midnight of the day containing the timestamp."""
    local = datetime.fromtimestamp(timestamp_ms / 1000, tz=tz)
    return local.replace(hour=0, minute=0, second=0, microsecond=0)


def entry_to_document(entry: LogEntry) -> dict[str, object]:
    """Serialize an entry to a flat document."""
    document: dict[str, object] = {
        "id": entry.id,
        "kind": entry.kind,
        "timestamp_ms": entry.timestamp_ms,
        "description": entry.description,
        "image_ref": entry.image_ref,
    }
    if isinstance(entry, FoodEntry):
        document["calories"] = entry.calories
        document["macros"] = (
            {
                "protein": entry.macros.protein,
                "carbs": entry.macros.carbs,
                "fat": entry.macros.fat,
            }
            if entry.macros
            else None
        )
    else:
        document["calories_burned"] = entry.calories_burned
        document["duration_minutes"] = entry.duration_minutes
    return document


def entry_from_document(row: dict[str, object]) -> LogEntry:
    """Deserialize a stored document into a typed entry."""
    kind = row.get("kind")
    try:
        if kind == "food":
            macros_raw = row.get("macros")
            macros = (
                Macros(
                    protein=str(macros_raw.get("protein", "")),
                    carbs=str(macros_raw.get("carbs", "")),
                    fat=str(macros_raw.get("fat", "")),
                )
                if isinstance(macros_raw, dict)
                else None
            )
            return FoodEntry(
                id=str(row["id"]),
                timestamp_ms=int(row["timestamp_ms"]),
                description=str(row.get("description") or ""),
                calories=float(row.get("calories") or 0.0),
                macros=macros,
                image_ref=row.get("image_ref"),
            )
        if kind == "workout":
            duration = row.get("duration_minutes")
            return WorkoutEntry(
                id=str(row["id"]),
                timestamp_ms=int(row["timestamp_ms"]),
                description=str(row.get("description") or ""),
                calories_burned=float(row.get("calories_burned") or 0.0),
                duration_minutes=float(duration) if duration is not None else None,
                image_ref=row.get("image_ref"),
            )
    except (KeyError, TypeError, ValueError) as exc:
        raise PersistenceError(f"Malformed log entry: {row!r}") from exc
    raise PersistenceError(f"Unknown log entry kind: {kind!r}")

"""Domain models for user profiles."""

from dataclasses import dataclass

from nutri_balance.errors import ValidationError

DEFAULT_WEIGHT_KG = 70.0
DEFAULT_HEIGHT_CM = 170.0
DEFAULT_BASAL_RATE = 1600.0


@dataclass(frozen=True)
class Profile:
    """Body statistics used for workout estimates and the daily balance."""

    weight: float = DEFAULT_WEIGHT_KG
    height: float = DEFAULT_HEIGHT_CM
    basal_rate: float = DEFAULT_BASAL_RATE

    def validate(self) -> "Profile":
        """Return self when every statistic is positive."""
        for field_name in ("weight", "height", "basal_rate"):
            value = getattr(self, field_name)
            if not isinstance(value, int | float) or value <= 0:
                raise ValidationError(f"{field_name} must be a positive number")
        return self

    def to_document(self) -> dict[str, float]:
        return {
            "weight": self.weight,
            "height": self.height,
            "basal_rate": self.basal_rate,
        }

    @classmethod
    def from_document(cls, row: dict[str, object]) -> "Profile":
        """Build a profile from a stored row, filling gaps with defaults."""
        return cls(
            weight=_as_float(row.get("weight"), DEFAULT_WEIGHT_KG),
            height=_as_float(row.get("height"), DEFAULT_HEIGHT_CM),
            basal_rate=_as_float(row.get("basal_rate"), DEFAULT_BASAL_RATE),
        )


def _as_float(value: object, default: float) -> float:
    if isinstance(value, bool):
        return default
    if isinstance(value, int | float):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return default
    return default

"""Domain models for the daily calorie balance."""

from dataclasses import dataclass


@dataclass(frozen=True)
class DailyBalance:
    """Calorie intake, expenditure and net balance for one local day."""

    intake: float
    burned: float
    basal: float
    net: float

    @property
    def total_expenditure(self) -> float:
        return self.burned + self.basal

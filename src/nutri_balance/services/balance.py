"""Daily calorie balance calculation."""

from collections.abc import Iterable

from nutri_balance.domain.balance import DailyBalance
from nutri_balance.domain.logs import FoodEntry, LogEntry, WorkoutEntry


def compute_daily_balance(
    todays_entries: Iterable[LogEntry], basal_rate: float
) -> DailyBalance:
    """Return intake, burn, basal and net balance for one day of entries.

    ``net = intake - (burned + basal_rate)``. Entries are expected to be
    pre-filtered to a single local day.
    """
    intake = 0.0
    burned = 0.0
    for entry in todays_entries:
        if isinstance(entry, FoodEntry):
            intake += entry.calories
        elif isinstance(entry, WorkoutEntry):
            burned += entry.calories_burned
    basal = float(basal_rate)
    return DailyBalance(
        intake=intake,
        burned=burned,
        basal=basal,
        net=intake - (burned + basal),
    )

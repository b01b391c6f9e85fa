"""Pydantic models for the HTTP API."""

from pydantic import BaseModel, Field

from nutri_balance.domain.analysis import FoodAnalysis, WorkoutAnalysis
from nutri_balance.domain.logs import FoodEntry, LogEntry
from nutri_balance.domain.profile import Profile
from nutri_balance.domain.sessions import View
from nutri_balance.services.views import DashboardSnapshot, ViewController


class CredentialsRequest(BaseModel):
    email: str
    password: str


class NavigateRequest(BaseModel):
    view: View


class ProfileModel(BaseModel):
    """Body statistics."""

    weight: float = Field(gt=0)
    height: float = Field(gt=0)
    basal_rate: float = Field(gt=0)

    def to_domain(self) -> Profile:
        return Profile(
            weight=self.weight, height=self.height, basal_rate=self.basal_rate
        )

    @classmethod
    def from_domain(cls, profile: Profile) -> "ProfileModel":
        return cls(
            weight=profile.weight,
            height=profile.height,
            basal_rate=profile.basal_rate,
        )


class AnalyzeFoodRequest(BaseModel):
    """Meal description and/or base64-encoded photo."""

    description: str | None = None
    image_base64: str | None = None
    mime_type: str | None = None


class AnalyzeWorkoutRequest(AnalyzeFoodRequest):
    """Workout description and/or photo plus the profile to estimate with."""

    profile: ProfileModel | None = None


class MacrosModel(BaseModel):
    protein: str
    carbs: str
    fat: str


class LogEntryModel(BaseModel):
    """A food or workout log entry."""

    id: str
    kind: str
    timestamp_ms: int
    description: str
    calories: float | None = None
    macros: MacrosModel | None = None
    calories_burned: float | None = None
    duration_minutes: float | None = None
    image_ref: str | None = None

    @classmethod
    def from_domain(cls, entry: LogEntry) -> "LogEntryModel":
        if isinstance(entry, FoodEntry):
            return cls(
                id=entry.id,
                kind=entry.kind,
                timestamp_ms=entry.timestamp_ms,
                description=entry.description,
                calories=entry.calories,
                macros=(
                    MacrosModel(
                        protein=entry.macros.protein,
                        carbs=entry.macros.carbs,
                        fat=entry.macros.fat,
                    )
                    if entry.macros
                    else None
                ),
                image_ref=entry.image_ref,
            )
        return cls(
            id=entry.id,
            kind=entry.kind,
            timestamp_ms=entry.timestamp_ms,
            description=entry.description,
            calories_burned=entry.calories_burned,
            duration_minutes=entry.duration_minutes,
            image_ref=entry.image_ref,
        )


class BalanceModel(BaseModel):
    intake: float
    burned: float
    basal: float
    net: float
    total_expenditure: float


class DashboardResponse(BaseModel):
    profile: ProfileModel
    entries: list[LogEntryModel]
    balance: BalanceModel

    @classmethod
    def from_snapshot(cls, snapshot: DashboardSnapshot) -> "DashboardResponse":
        balance = snapshot.balance
        return cls(
            profile=ProfileModel.from_domain(snapshot.profile),
            entries=[LogEntryModel.from_domain(entry) for entry in snapshot.entries],
            balance=BalanceModel(
                intake=balance.intake,
                burned=balance.burned,
                basal=balance.basal,
                net=balance.net,
                total_expenditure=balance.total_expenditure,
            ),
        )


class SessionStateResponse(BaseModel):
    """Current screen of a session."""

    view: View
    phase: str | None = None
    food_result: FoodAnalysis | None = None
    workout_result: WorkoutAnalysis | None = None
    error: str | None = None
    email: str | None = None

    @classmethod
    def from_controller(cls, controller: ViewController) -> "SessionStateResponse":
        entry = controller.entry
        result = entry.result if entry else None
        return cls(
            view=controller.view,
            phase=entry.phase.value if entry else None,
            food_result=result if isinstance(result, FoodAnalysis) else None,
            workout_result=result if isinstance(result, WorkoutAnalysis) else None,
            error=(entry.error if entry and entry.error else controller.error),
            email=controller.session.email if controller.session else None,
        )


class SignInResponse(SessionStateResponse):
    token: str
    user_id: str

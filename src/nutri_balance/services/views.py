"""Screen state machine threading auth, analysis and persistence together."""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime

from nutri_balance.domain.analysis import (
    AnalysisInput,
    AnalysisResult,
    FoodAnalysis,
    WorkoutAnalysis,
    build_analysis_input,
    input_description,
    input_image,
)
from nutri_balance.domain.balance import DailyBalance
from nutri_balance.domain.logs import (
    FoodEntry,
    LogEntry,
    Macros,
    WorkoutEntry,
    new_entry_id,
    now_ms,
)
from nutri_balance.domain.profile import Profile
from nutri_balance.domain.sessions import EntryPhase, SessionContext, View
from nutri_balance.errors import (
    AnalysisError,
    AuthError,
    PersistenceError,
    ValidationError,
)
from nutri_balance.services.analysis import AnalysisService, to_data_url
from nutri_balance.services.auth import AuthService
from nutri_balance.services.balance import compute_daily_balance
from nutri_balance.services.logs import LogCallback, LogService, Unsubscribe
from nutri_balance.services.profiles import ProfileService

logger = logging.getLogger(__name__)

ENTRY_VIEWS = {View.FOOD_ENTRY, View.WORKOUT_ENTRY}
ANALYSIS_FAILED_MESSAGE = "Failed to analyze. Please try again."
PERSISTENCE_FAILED_MESSAGE = "Something went wrong while saving. Please try again."


@dataclass
class CancellationToken:
    """Marks analysis results as stale once their screen is left."""

    cancelled: bool = False

    def cancel(self) -> None:
        self.cancelled = True


@dataclass
class EntryScreen:
    """State of a food or workout entry screen."""

    view: View
    token: CancellationToken = field(default_factory=CancellationToken)
    phase: EntryPhase = EntryPhase.COMPOSE
    description: str | None = None
    image_ref: str | None = None
    profile: Profile | None = None
    result: AnalysisResult | None = None
    error: str | None = None


@dataclass(frozen=True)
class DashboardSnapshot:
    """Profile, today's entries (newest first) and the daily balance."""

    profile: Profile
    entries: list[LogEntry]
    balance: DailyBalance


@dataclass
class ViewController:
    """Selects the active screen and runs the compose/review entry flows."""

    auth_service: AuthService
    profile_service: ProfileService
    log_service: LogService
    analysis_service: AnalysisService
    timezone_name: str = "UTC"
    debug_errors: bool = False
    clock: Callable[[], int] = now_ms
    session: SessionContext | None = None
    view: View = View.LOGGED_OUT
    entry: EntryScreen | None = None
    error: str | None = None

    def sign_in(self, email: str, password: str) -> SessionContext:
        """Authenticate and open the dashboard."""
        return self._authenticate(self.auth_service.sign_in, email, password)

    def sign_up(self, email: str, password: str) -> SessionContext:
        """Register, authenticate and open the dashboard."""
        return self._authenticate(self.auth_service.sign_up, email, password)

    def restore(self, session: SessionContext) -> None:
        """Resume a session; navigation always restarts at the dashboard."""
        self._leave_entry()
        self.session = session
        self.view = View.DASHBOARD
        self.error = None

    def sign_out(self) -> None:
        """Leave any screen and drop the session."""
        self._leave_entry()
        if self.session is not None:
            self.auth_service.sign_out(self.session)
        self.session = None
        self.view = View.LOGGED_OUT
        self.error = None

    def navigate(self, view: View) -> None:
        """Switch between signed-in screens."""
        self._require_session()
        if view == View.LOGGED_OUT:
            raise ValidationError("Use sign-out to leave the app.")
        if view == self.view:
            return
        self._leave_entry()
        self.view = view
        if view in ENTRY_VIEWS:
            self.entry = EntryScreen(view=view)

    def cancel(self) -> None:
        """Abandon the current entry screen and return to the dashboard."""
        self._require_session()
        self._leave_entry()
        self.view = View.DASHBOARD

    async def submit_food(
        self,
        description: str | None,
        image_bytes: bytes | None = None,
        mime_type: str | None = None,
    ) -> FoodAnalysis | None:
        """Analyze a meal; returns None when the screen was left meanwhile."""
        screen = self._require_entry(View.FOOD_ENTRY, EntryPhase.COMPOSE)
        analysis_input = self._validated_input(
            screen, description, image_bytes, mime_type
        )
        token = screen.token
        try:
            result = await self.analysis_service.analyze_food(analysis_input)
        except AnalysisError as exc:
            if token.cancelled:
                logger.info("Dropping failed food analysis for a closed screen")
                return None
            screen.error = self._message(ANALYSIS_FAILED_MESSAGE, exc)
            raise
        if token.cancelled:
            logger.info("Dropping food analysis for a closed screen")
            return None
        self._enter_review(screen, result, analysis_input)
        return result

    async def submit_workout(
        self,
        profile: Profile | None,
        description: str | None,
        image_bytes: bytes | None = None,
        mime_type: str | None = None,
    ) -> WorkoutAnalysis | None:
        """Analyze a workout, optionally with edited statistics.

        Only an edited profile is saved on confirm; without one the stored
        profile is used for the estimate and left untouched.
        """
        screen = self._require_entry(View.WORKOUT_ENTRY, EntryPhase.COMPOSE)
        if profile is not None:
            try:
                profile.validate()
            except ValidationError as exc:
                screen.error = str(exc)
                raise
        analysis_input = self._validated_input(
            screen, description, image_bytes, mime_type
        )
        screen.profile = profile
        if profile is None:
            profile = self.get_profile()
        token = screen.token
        try:
            result = await self.analysis_service.analyze_workout(
                profile, analysis_input
            )
        except AnalysisError as exc:
            if token.cancelled:
                logger.info("Dropping failed workout analysis for a closed screen")
                return None
            screen.error = self._message(ANALYSIS_FAILED_MESSAGE, exc)
            raise
        if token.cancelled:
            logger.info("Dropping workout analysis for a closed screen")
            return None
        self._enter_review(screen, result, analysis_input)
        return result

    def discard(self) -> None:
        """Throw away the reviewed result and compose again."""
        screen = self._require_entry(self.view, EntryPhase.REVIEW)
        screen.result = None
        screen.phase = EntryPhase.COMPOSE
        screen.error = None

    def confirm(self) -> LogEntry:
        """Persist the reviewed result and return to the dashboard.

        Workout confirmations save the edited profile first; the log entry is
        written only after that succeeds.
        """
        session = self._require_session()
        screen = self._require_entry(self.view, EntryPhase.REVIEW)
        timestamp = self.clock()
        try:
            if isinstance(screen.result, FoodAnalysis):
                entry: LogEntry = _food_entry(screen, screen.result, timestamp)
            elif isinstance(screen.result, WorkoutAnalysis):
                if screen.profile is not None:
                    self.profile_service.save_profile(session.user_id, screen.profile)
                entry = _workout_entry(screen, screen.result, timestamp)
            else:
                raise ValidationError("Nothing to save yet.")
            self.log_service.append_log(session.user_id, entry)
        except PersistenceError as exc:
            screen.error = self._message(PERSISTENCE_FAILED_MESSAGE, exc)
            raise
        self._leave_entry()
        self.view = View.DASHBOARD
        return entry

    def dismiss_error(self) -> None:
        self.error = None
        if self.entry is not None:
            self.entry.error = None

    def dashboard(
        self, now: datetime | None = None, timezone_name: str | None = None
    ) -> DashboardSnapshot:
        """Return today's entries and balance for display."""
        session = self._require_session()
        profile = self.profile_service.get_profile(session.user_id)
        try:
            today = self.log_service.list_today_logs(
                session.user_id, timezone_name or self.timezone_name, now=now
            )
        except PersistenceError as exc:
            self.error = self._message(PERSISTENCE_FAILED_MESSAGE, exc)
            raise
        balance = compute_daily_balance(today, profile.basal_rate)
        return DashboardSnapshot(
            profile=profile, entries=list(reversed(today)), balance=balance
        )

    def get_profile(self) -> Profile:
        return self.profile_service.get_profile(self._require_session().user_id)

    def update_profile(self, profile: Profile) -> Profile:
        """Save edited statistics from the settings screen."""
        session = self._require_session()
        try:
            self.profile_service.save_profile(session.user_id, profile)
        except PersistenceError as exc:
            self.error = self._message(PERSISTENCE_FAILED_MESSAGE, exc)
            raise
        return profile

    def list_logs(self) -> list[LogEntry]:
        return self.log_service.list_logs(self._require_session().user_id)

    def delete_log(self, log_id: str) -> None:
        session = self._require_session()
        try:
            self.log_service.delete_log(session.user_id, log_id)
        except PersistenceError as exc:
            self.error = self._message(PERSISTENCE_FAILED_MESSAGE, exc)
            raise

    def subscribe(self, callback: LogCallback) -> Unsubscribe:
        """Receive the ascending log list now and on every change."""
        return self.log_service.subscribe(self._require_session().user_id, callback)

    def _authenticate(
        self,
        method: Callable[[str, str], SessionContext],
        email: str,
        password: str,
    ) -> SessionContext:
        try:
            session = method(email, password)
        except (AuthError, ValidationError) as exc:
            self.error = str(exc)
            raise
        self.restore(session)
        return session

    def _require_session(self) -> SessionContext:
        if self.session is None or self.view == View.LOGGED_OUT:
            raise AuthError("not_signed_in", "Please sign in first.")
        return self.session

    def _require_entry(self, view: View, phase: EntryPhase) -> EntryScreen:
        self._require_session()
        screen = self.entry
        if view not in ENTRY_VIEWS:
            raise ValidationError("No entry screen is open.")
        if screen is None or screen.view != view or self.view != view:
            raise ValidationError(f"Open the {view.value} screen first.")
        if screen.phase != phase:
            raise ValidationError(f"Entry screen is not in the {phase.value} phase.")
        return screen

    def _validated_input(
        self,
        screen: EntryScreen,
        description: str | None,
        image_bytes: bytes | None,
        mime_type: str | None,
    ) -> AnalysisInput:
        try:
            analysis_input = build_analysis_input(description, image_bytes, mime_type)
        except ValidationError as exc:
            screen.error = str(exc)
            raise
        screen.error = None
        screen.result = None
        return analysis_input

    def _enter_review(
        self,
        screen: EntryScreen,
        result: AnalysisResult,
        analysis_input: AnalysisInput,
    ) -> None:
        image = input_image(analysis_input)
        screen.description = input_description(analysis_input)
        screen.image_ref = to_data_url(image) if image else None
        screen.result = result
        screen.phase = EntryPhase.REVIEW

    def _leave_entry(self) -> None:
        if self.entry is not None:
            self.entry.token.cancel()
        self.entry = None

    def _message(self, fallback: str, exc: Exception) -> str:
        if self.debug_errors:
            detail = f"{type(exc).__name__}: {exc}".strip()
            return f"{fallback} (debug: {detail})"
        return fallback


def _food_entry(
    screen: EntryScreen, result: FoodAnalysis, timestamp: int
) -> FoodEntry:
    return FoodEntry(
        id=new_entry_id(timestamp),
        timestamp_ms=timestamp,
        description=result.name,
        calories=result.estimated_calories,
        macros=Macros(
            protein=result.macros.protein,
            carbs=result.macros.carbs,
            fat=result.macros.fat,
        ),
        image_ref=screen.image_ref,
    )


def _workout_entry(
    screen: EntryScreen, result: WorkoutAnalysis, timestamp: int
) -> WorkoutEntry:
    return WorkoutEntry(
        id=new_entry_id(timestamp),
        timestamp_ms=timestamp,
        description=screen.description or result.summary,
        calories_burned=result.calories_burned,
        image_ref=screen.image_ref,
    )

"""FastAPI application factory."""

import asyncio
import base64
import binascii
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager, suppress
from zoneinfo import ZoneInfo

from fastapi import Depends, FastAPI, Header, Request, WebSocket
from fastapi.responses import JSONResponse

from nutri_balance.api.models import (
    AnalyzeFoodRequest,
    AnalyzeWorkoutRequest,
    CredentialsRequest,
    DashboardResponse,
    LogEntryModel,
    NavigateRequest,
    ProfileModel,
    SessionStateResponse,
    SignInResponse,
)
from nutri_balance.app_logging import configure_logging
from nutri_balance.containers import AppContainer
from nutri_balance.domain.logs import LogEntry
from nutri_balance.errors import (
    AnalysisError,
    AuthError,
    PersistenceError,
    ValidationError,
)
from nutri_balance.services.views import (
    ANALYSIS_FAILED_MESSAGE,
    PERSISTENCE_FAILED_MESSAGE,
    ViewController,
)

WS_POLICY_VIOLATION = 4401


def create_app(container: AppContainer) -> FastAPI:  # noqa: PLR0915
    """Create a FastAPI app configured with dependencies."""
    configure_logging()
    logger = logging.getLogger(__name__)
    debug_errors = container.settings.environment == "local"

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    @app.exception_handler(AuthError)
    async def auth_error_handler(request: Request, exc: AuthError) -> JSONResponse:
        return JSONResponse(
            status_code=401, content={"error": exc.code, "message": exc.message}
        )

    @app.exception_handler(ValidationError)
    async def validation_error_handler(
        request: Request, exc: ValidationError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=422, content={"error": "invalid_input", "message": str(exc)}
        )

    @app.exception_handler(AnalysisError)
    async def analysis_error_handler(
        request: Request, exc: AnalysisError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=502,
            content={
                "error": "analysis_failed",
                "message": _with_debug(ANALYSIS_FAILED_MESSAGE, exc, debug_errors),
            },
        )

    @app.exception_handler(PersistenceError)
    async def persistence_error_handler(
        request: Request, exc: PersistenceError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=503,
            content={
                "error": "persistence_failed",
                "message": _with_debug(PERSISTENCE_FAILED_MESSAGE, exc, debug_errors),
            },
        )

    async def current_controller(
        request: Request, authorization: str | None = Header(default=None)
    ) -> ViewController:
        state_container: AppContainer = request.app.state.container
        token = _bearer_token(authorization)
        controller = state_container.session_registry.get(token) if token else None
        if controller is None:
            raise AuthError("not_signed_in", "Please sign in first.")
        return controller

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.post("/auth/sign-in")
    async def sign_in(body: CredentialsRequest, request: Request) -> SignInResponse:
        """Authenticate and open a session on the dashboard."""
        state_container: AppContainer = request.app.state.container
        token, controller = state_container.session_registry.sign_in(
            body.email, body.password
        )
        return _sign_in_response(token, controller)

    @app.post("/auth/sign-up")
    async def sign_up(body: CredentialsRequest, request: Request) -> SignInResponse:
        """Register, then open a session on the dashboard."""
        state_container: AppContainer = request.app.state.container
        token, controller = state_container.session_registry.sign_up(
            body.email, body.password
        )
        return _sign_in_response(token, controller)

    @app.post("/auth/sign-out")
    async def sign_out(
        request: Request, authorization: str | None = Header(default=None)
    ) -> dict[str, str]:
        """End the session behind the bearer token."""
        state_container: AppContainer = request.app.state.container
        token = _bearer_token(authorization)
        if token:
            state_container.session_registry.sign_out(token)
        return {"status": "ok"}

    @app.get("/session")
    async def session_state(
        controller: ViewController = Depends(current_controller),
    ) -> SessionStateResponse:
        """Return the current screen, entry phase and any pending result."""
        return SessionStateResponse.from_controller(controller)

    @app.post("/navigate")
    async def navigate(
        body: NavigateRequest,
        controller: ViewController = Depends(current_controller),
    ) -> SessionStateResponse:
        controller.navigate(body.view)
        return SessionStateResponse.from_controller(controller)

    @app.post("/entry/cancel")
    async def cancel_entry(
        controller: ViewController = Depends(current_controller),
    ) -> SessionStateResponse:
        controller.cancel()
        return SessionStateResponse.from_controller(controller)

    @app.post("/entry/discard")
    async def discard_entry(
        controller: ViewController = Depends(current_controller),
    ) -> SessionStateResponse:
        controller.discard()
        return SessionStateResponse.from_controller(controller)

    @app.post("/entry/dismiss-error")
    async def dismiss_error(
        controller: ViewController = Depends(current_controller),
    ) -> SessionStateResponse:
        controller.dismiss_error()
        return SessionStateResponse.from_controller(controller)

    @app.post("/entry/confirm")
    async def confirm_entry(
        controller: ViewController = Depends(current_controller),
    ) -> LogEntryModel:
        """Save the reviewed analysis as a log entry."""
        entry = controller.confirm()
        return LogEntryModel.from_domain(entry)

    @app.post("/food/analyze")
    async def analyze_food(
        body: AnalyzeFoodRequest,
        controller: ViewController = Depends(current_controller),
    ) -> SessionStateResponse:
        """Estimate calories and macros for a meal."""
        await controller.submit_food(
            body.description, _decode_image(body.image_base64), body.mime_type
        )
        return SessionStateResponse.from_controller(controller)

    @app.post("/workout/analyze")
    async def analyze_workout(
        body: AnalyzeWorkoutRequest,
        controller: ViewController = Depends(current_controller),
    ) -> SessionStateResponse:
        """Estimate calories burned, personalized to the profile."""
        profile = body.profile.to_domain() if body.profile else None
        await controller.submit_workout(
            profile,
            body.description,
            _decode_image(body.image_base64),
            body.mime_type,
        )
        return SessionStateResponse.from_controller(controller)

    @app.get("/dashboard")
    async def dashboard(
        tz: str | None = None,
        controller: ViewController = Depends(current_controller),
    ) -> DashboardResponse:
        """Return today's entries (newest first) and the calorie balance."""
        if tz is not None and not _is_valid_timezone(tz):
            raise ValidationError(f"Unknown timezone: {tz}")
        return DashboardResponse.from_snapshot(controller.dashboard(timezone_name=tz))

    @app.get("/logs")
    async def list_logs(
        controller: ViewController = Depends(current_controller),
    ) -> list[LogEntryModel]:
        """Return every log entry, oldest first."""
        return [LogEntryModel.from_domain(entry) for entry in controller.list_logs()]

    @app.delete("/logs/{log_id}")
    async def delete_log(
        log_id: str, controller: ViewController = Depends(current_controller)
    ) -> dict[str, str]:
        controller.delete_log(log_id)
        return {"status": "ok"}

    @app.get("/profile")
    async def get_profile(
        controller: ViewController = Depends(current_controller),
    ) -> ProfileModel:
        return ProfileModel.from_domain(controller.get_profile())

    @app.put("/profile")
    async def update_profile(
        body: ProfileModel, controller: ViewController = Depends(current_controller)
    ) -> ProfileModel:
        return ProfileModel.from_domain(controller.update_profile(body.to_domain()))

    @app.websocket("/logs/stream")
    async def logs_stream(websocket: WebSocket, token: str) -> None:
        """Push the ascending log list on connect and after every change."""
        state_container: AppContainer = websocket.app.state.container
        controller = state_container.session_registry.get(token)
        if controller is None or controller.session is None:
            await websocket.close(code=WS_POLICY_VIOLATION)
            return
        user_id = controller.session.user_id
        await websocket.accept()
        loop = asyncio.get_running_loop()
        queue: asyncio.Queue[list[LogEntry]] = asyncio.Queue()

        def push(logs: list[LogEntry]) -> None:
            loop.call_soon_threadsafe(queue.put_nowait, logs)

        async def forward() -> None:
            while True:
                logs = await queue.get()
                await websocket.send_json(
                    {
                        "logs": [
                            LogEntryModel.from_domain(entry).model_dump()
                            for entry in logs
                        ]
                    }
                )

        unsubscribe = controller.subscribe(push)
        forward_task = asyncio.create_task(forward())
        try:
            while True:
                message = await websocket.receive()
                if message["type"] == "websocket.disconnect":
                    break
        finally:
            unsubscribe()
            forward_task.cancel()
            with suppress(asyncio.CancelledError):
                try:
                    await forward_task
                except Exception:
                    logger.exception(
                        "Log stream push failed", extra={"user_id": user_id}
                    )
            logger.info("Log stream closed", extra={"user_id": user_id})

    return app


def _sign_in_response(token: str, controller: ViewController) -> SignInResponse:
    state = SessionStateResponse.from_controller(controller)
    return SignInResponse(
        token=token,
        user_id=controller.session.user_id if controller.session else "",
        **state.model_dump(),
    )


def _bearer_token(authorization: str | None) -> str | None:
    """Extract the token from an ``Authorization: Bearer`` header."""
    if not authorization:
        return None
    scheme, _, value = authorization.partition(" ")
    if scheme.lower() != "bearer" or not value.strip():
        return None
    return value.strip()


def _decode_image(image_base64: str | None) -> bytes | None:
    if not image_base64:
        return None
    payload = image_base64
    if payload.startswith("data:") and "," in payload:
        payload = payload.split(",", 1)[1]
    try:
        return base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValidationError("Image must be valid base64 data.") from exc


def _with_debug(fallback: str, exc: Exception, debug_errors: bool) -> str:
    """Return a user-facing error message with local debug info."""
    if debug_errors:
        detail = f"{type(exc).__name__}: {exc}".strip()
        if detail:
            return f"{fallback} (debug: {detail})"
    return fallback


def _is_valid_timezone(value: str) -> bool:
    try:
        ZoneInfo(value)
    except Exception:
        return False
    return True

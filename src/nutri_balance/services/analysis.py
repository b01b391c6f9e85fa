"""AI analysis gateway for food and workout estimates."""

import base64
import logging
from dataclasses import dataclass
from typing import Protocol, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as SchemaValidationError

from nutri_balance.domain.analysis import (
    AnalysisInput,
    FoodAnalysis,
    ImagePayload,
    WorkoutAnalysis,
    input_description,
    input_image,
)
from nutri_balance.domain.profile import Profile
from nutri_balance.errors import AnalysisError

logger = logging.getLogger(__name__)

ResultT = TypeVar("ResultT", bound=BaseModel)

FOOD_SCHEMA: dict[str, object] = {
    "type": "object",
    "properties": {
        "name": {"type": "string"},
        "estimated_calories": {"type": "number", "minimum": 0},
        "macros": {
            "type": "object",
            "properties": {
                "protein": {"type": "string"},
                "carbs": {"type": "string"},
                "fat": {"type": "string"},
            },
            "required": ["protein", "carbs", "fat"],
            "additionalProperties": False,
        },
        "confidence": {"type": "string", "enum": ["High", "Medium", "Low"]},
        "summary": {"type": "string"},
    },
    "required": ["name", "estimated_calories", "macros", "confidence", "summary"],
    "additionalProperties": False,
}

WORKOUT_SCHEMA: dict[str, object] = {
    "type": "object",
    "properties": {
        "workout_type": {"type": "string"},
        "calories_burned": {"type": "number", "minimum": 0},
        "intensity": {"type": "string", "enum": ["Low", "Moderate", "High"]},
        "summary": {"type": "string"},
    },
    "required": ["workout_type", "calories_burned", "intensity", "summary"],
    "additionalProperties": False,
}

FOOD_PROMPT = (
    "Analyze the provided food image and/or description. "
    "Identify the food items and name the main dish. "
    "Estimate the total calories and break down protein, carbs and fat "
    "as short strings such as '20g'. "
    "Rate your confidence as High, Medium or Low and add a short friendly summary."
)

WORKOUT_PROMPT = (
    "Analyze the provided workout description or image, which may show a gym "
    "machine display, a workout summary board or a selfie, in the context of the "
    "user statistics above. "
    "Estimate the total calories burned during this session, classify the "
    "intensity as Low, Moderate or High and add a short analysis of the effort."
)


class AnalysisClient(Protocol):
    """Interface for a multimodal model with structured output."""

    async def generate(  # noqa: PLR0913
        self,
        *,
        model: str,
        reasoning_effort: str | None,
        store: bool,
        parts: list[dict[str, object]],
        schema: dict[str, object],
        schema_name: str,
    ) -> dict[str, object]:
        """Return the model's JSON output as a dict."""


@dataclass
class AnalysisService:
    """Builds multimodal requests and validates structured results."""

    client: AnalysisClient
    model: str
    reasoning_effort: str | None = None
    store: bool = False

    async def analyze_food(self, analysis_input: AnalysisInput) -> FoodAnalysis:
        """Estimate calories and macros for a meal."""
        parts = _media_parts(analysis_input)
        description = input_description(analysis_input)
        if description:
            parts.append(_text_part(f"Description of food: {description}"))
        parts.append(_text_part(FOOD_PROMPT))
        return await self._run(parts, FOOD_SCHEMA, "food_analysis", FoodAnalysis)

    async def analyze_workout(
        self, profile: Profile, analysis_input: AnalysisInput
    ) -> WorkoutAnalysis:
        """Estimate calories burned for a workout, personalized to the profile."""
        parts = _media_parts(analysis_input)
        parts.append(_text_part(_profile_context(profile)))
        description = input_description(analysis_input)
        if description:
            parts.append(_text_part(f"Workout description: {description}"))
        parts.append(_text_part(WORKOUT_PROMPT))
        return await self._run(
            parts, WORKOUT_SCHEMA, "workout_analysis", WorkoutAnalysis
        )

    async def _run(
        self,
        parts: list[dict[str, object]],
        schema: dict[str, object],
        schema_name: str,
        result_type: type[ResultT],
    ) -> ResultT:
        try:
            raw = await self.client.generate(
                model=self.model,
                reasoning_effort=self.reasoning_effort,
                store=self.store,
                parts=parts,
                schema=schema,
                schema_name=schema_name,
            )
        except AnalysisError:
            logger.exception("Analysis request failed", extra={"schema": schema_name})
            raise
        except Exception as exc:
            logger.exception("Analysis request failed", extra={"schema": schema_name})
            raise AnalysisError(f"{type(exc).__name__}: {exc}") from exc
        try:
            return result_type.model_validate(raw)
        except SchemaValidationError as exc:
            logger.exception(
                "Analysis output did not match schema", extra={"schema": schema_name}
            )
            raise AnalysisError(
                "Model output did not match the expected shape"
            ) from exc


def _media_parts(analysis_input: AnalysisInput) -> list[dict[str, object]]:
    image = input_image(analysis_input)
    if image is None:
        return []
    return [{"type": "input_image", "image_url": to_data_url(image)}]


def _text_part(text: str) -> dict[str, object]:
    return {"type": "input_text", "text": text}


def _profile_context(profile: Profile) -> str:
    return (
        "User statistics:\n"
        f"Weight: {profile.weight:g} kg\n"
        f"Height: {profile.height:g} cm\n"
        f"Basal metabolic rate: {profile.basal_rate:g} kcal/day"
    )


def to_data_url(image: ImagePayload) -> str:
    """Encode an image as a base64 data URL carrying its MIME type."""
    encoded = base64.b64encode(image.data).decode("utf-8")
    return f"data:{image.mime_type};base64,{encoded}"

"""Models for AI analysis inputs and structured results."""

from dataclasses import dataclass

from pydantic import BaseModel, Field

from nutri_balance.errors import ValidationError


class MacroBreakdown(BaseModel):
    """Macronutrient estimate, each value a short string such as ``20g``."""

    protein: str
    carbs: str
    fat: str


class FoodAnalysis(BaseModel):
    """Structured output for food analysis."""

    name: str
    estimated_calories: float = Field(ge=0.0)
    macros: MacroBreakdown
    confidence: str
    summary: str


class WorkoutAnalysis(BaseModel):
    """Structured output for workout analysis."""

    workout_type: str
    calories_burned: float = Field(ge=0.0)
    intensity: str
    summary: str


AnalysisResult = FoodAnalysis | WorkoutAnalysis


@dataclass(frozen=True)
class ImagePayload:
    """Raw image bytes with their MIME type."""

    data: bytes
    mime_type: str


@dataclass(frozen=True)
class TextInput:
    description: str


@dataclass(frozen=True)
class ImageInput:
    image: ImagePayload


@dataclass(frozen=True)
class TextImageInput:
    description: str
    image: ImagePayload


AnalysisInput = TextInput | ImageInput | TextImageInput


def build_analysis_input(
    description: str | None,
    image_bytes: bytes | None,
    mime_type: str | None = None,
) -> AnalysisInput:
    """Validate the optional description/image pair into a tagged input."""
    text = (description or "").strip()
    image = (
        ImagePayload(
            data=image_bytes,
            mime_type=_normalize_mime_type(mime_type, image_bytes),
        )
        if image_bytes
        else None
    )
    if text and image:
        return TextImageInput(description=text, image=image)
    if text:
        return TextInput(description=text)
    if image:
        return ImageInput(image=image)
    raise ValidationError("Please provide a description or an image.")


def input_description(analysis_input: AnalysisInput) -> str | None:
    """Return the user description carried by the input, if any."""
    if isinstance(analysis_input, TextInput | TextImageInput):
        return analysis_input.description
    return None


def input_image(analysis_input: AnalysisInput) -> ImagePayload | None:
    """Return the image carried by the input, if any."""
    if isinstance(analysis_input, ImageInput | TextImageInput):
        return analysis_input.image
    return None


def _normalize_mime_type(mime_type: str | None, image_bytes: bytes) -> str:
    if mime_type and mime_type.startswith("image/"):
        return mime_type
    return detect_mime_type(image_bytes)


def detect_mime_type(image_bytes: bytes) -> str:
    """Infer a basic image MIME type from file signatures."""
    if image_bytes.startswith(b"\xff\xd8\xff"):
        return "image/jpeg"
    if image_bytes.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png"
    if image_bytes[:4] == b"RIFF" and image_bytes[8:12] == b"WEBP":
        return "image/webp"
    if image_bytes[:6] in {b"GIF87a", b"GIF89a"}:
        return "image/gif"
    return "image/jpeg"

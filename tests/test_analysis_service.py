"""Tests for the analysis gateway."""

import asyncio

import pytest

from nutri_balance.domain.analysis import (
    ImageInput,
    TextImageInput,
    TextInput,
    build_analysis_input,
    detect_mime_type,
)
from nutri_balance.domain.profile import Profile
from nutri_balance.errors import AnalysisError, ValidationError
from nutri_balance.services.analysis import (
    FOOD_PROMPT,
    WORKOUT_PROMPT,
    AnalysisService,
    to_data_url,
)
from tests.conftest import FakeAnalysisClient

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"rest"


def _service(client: FakeAnalysisClient) -> AnalysisService:
    return AnalysisService(client=client, model="gpt-test", reasoning_effort="high")


def test_build_input_variants() -> None:
    assert isinstance(build_analysis_input("Toast", None), TextInput)
    assert isinstance(build_analysis_input("", PNG_BYTES), ImageInput)
    assert isinstance(build_analysis_input("Toast", PNG_BYTES), TextImageInput)


@pytest.mark.parametrize("description", [None, "", "   \n"])
def test_build_input_rejects_empty(description: str | None) -> None:
    with pytest.raises(ValidationError):
        build_analysis_input(description, None)


def test_build_input_strips_description_and_sniffs_mime_type() -> None:
    analysis_input = build_analysis_input("  oatmeal ", PNG_BYTES, "application/bin")

    assert isinstance(analysis_input, TextImageInput)
    assert analysis_input.description == "oatmeal"
    assert analysis_input.image.mime_type == "image/png"


def test_detect_mime_type_signatures() -> None:
    assert detect_mime_type(b"\xff\xd8\xff\xe0") == "image/jpeg"
    assert detect_mime_type(b"RIFF\x00\x00\x00\x00WEBPVP8 ") == "image/webp"
    assert detect_mime_type(b"GIF89a...") == "image/gif"
    assert detect_mime_type(b"unknown") == "image/jpeg"


def test_to_data_url_carries_mime_type() -> None:
    analysis_input = build_analysis_input(None, PNG_BYTES)
    assert isinstance(analysis_input, ImageInput)

    assert to_data_url(analysis_input.image).startswith("data:image/png;base64,")


def test_food_parts_put_image_first_and_prompt_last() -> None:
    client = FakeAnalysisClient()

    result = asyncio.run(
        _service(client).analyze_food(build_analysis_input("Chicken", PNG_BYTES))
    )

    parts = client.calls[0]["parts"]
    assert isinstance(parts, list)
    assert parts[0]["type"] == "input_image"
    assert parts[1] == {"type": "input_text", "text": "Description of food: Chicken"}
    assert parts[-1] == {"type": "input_text", "text": FOOD_PROMPT}
    assert client.calls[0]["schema_name"] == "food_analysis"
    assert result.name == "Grilled chicken with rice"
    assert result.estimated_calories == 500


def test_text_only_food_request_has_no_image_part() -> None:
    client = FakeAnalysisClient()

    asyncio.run(_service(client).analyze_food(build_analysis_input("Apple", None)))

    parts = client.calls[0]["parts"]
    assert isinstance(parts, list)
    assert [part["type"] for part in parts] == ["input_text", "input_text"]


def test_workout_parts_include_profile_context_before_prompt() -> None:
    client = FakeAnalysisClient()
    profile = Profile(weight=82.5, height=180, basal_rate=1850)

    result = asyncio.run(
        _service(client).analyze_workout(
            profile, build_analysis_input("30 min run", None)
        )
    )

    parts = client.calls[0]["parts"]
    assert isinstance(parts, list)
    texts = [part["text"] for part in parts]
    assert texts[0] == (
        "User statistics:\n"
        "Weight: 82.5 kg\n"
        "Height: 180 cm\n"
        "Basal metabolic rate: 1850 kcal/day"
    )
    assert texts[1] == "Workout description: 30 min run"
    assert texts[-1] == WORKOUT_PROMPT
    assert result.calories_burned == 300


def test_client_failure_is_chained() -> None:
    cause = TimeoutError("deadline exceeded")
    client = FakeAnalysisClient(error=cause)

    with pytest.raises(AnalysisError) as excinfo:
        asyncio.run(_service(client).analyze_food(build_analysis_input("Soup", None)))

    assert excinfo.value.__cause__ is cause
    assert "TimeoutError" in str(excinfo.value)


def test_schema_mismatch_raises_without_partial_result() -> None:
    client = FakeAnalysisClient(
        payloads={"food_analysis": {"name": "Soup", "estimated_calories": -5}}
    )

    with pytest.raises(AnalysisError) as excinfo:
        asyncio.run(_service(client).analyze_food(build_analysis_input("Soup", None)))

    assert excinfo.value.__cause__ is not None

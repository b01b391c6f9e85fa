"""Tests for the OpenAI analysis adapter."""

import asyncio
from dataclasses import dataclass, field
from types import SimpleNamespace

import pytest

from nutri_balance.adapters.openai_analysis_client import OpenAIAnalysisClient
from nutri_balance.errors import AnalysisError
from nutri_balance.services.analysis import FOOD_SCHEMA


@dataclass
class FakeResponses:
    output_text: str
    requests: list[dict[str, object]] = field(default_factory=list)

    async def create(self, **kwargs: object) -> SimpleNamespace:
        self.requests.append(kwargs)
        return SimpleNamespace(output_text=self.output_text)


@dataclass
class FakeOpenAI:
    responses: FakeResponses
    closed: bool = False

    async def close(self) -> None:
        self.closed = True


def _generate(client: OpenAIAnalysisClient, effort: str | None = None) -> object:
    return asyncio.run(
        client.generate(
            model="gpt-test",
            reasoning_effort=effort,
            store=False,
            parts=[{"type": "input_text", "text": "Toast"}],
            schema=FOOD_SCHEMA,
            schema_name="food_analysis",
        )
    )


def test_generate_sends_strict_schema_and_parses_json() -> None:
    responses = FakeResponses(output_text='{"name": "Toast"}')
    client = OpenAIAnalysisClient(client=FakeOpenAI(responses))

    payload = _generate(client, effort="low")

    assert payload == {"name": "Toast"}
    request = responses.requests[0]
    assert request["model"] == "gpt-test"
    assert request["input"] == [
        {"role": "user", "content": [{"type": "input_text", "text": "Toast"}]}
    ]
    assert request["text"] == {
        "format": {
            "type": "json_schema",
            "name": "food_analysis",
            "strict": True,
            "schema": FOOD_SCHEMA,
        }
    }
    assert request["reasoning"] == {"effort": "low"}


def test_generate_omits_reasoning_when_unset() -> None:
    responses = FakeResponses(output_text="{}")

    _generate(OpenAIAnalysisClient(client=FakeOpenAI(responses)))

    assert "reasoning" not in responses.requests[0]


@pytest.mark.parametrize("output_text", ["", "not json", "[1, 2]"])
def test_generate_rejects_unusable_output(output_text: str) -> None:
    client = OpenAIAnalysisClient(client=FakeOpenAI(FakeResponses(output_text)))

    with pytest.raises(AnalysisError):
        _generate(client)


def test_close_closes_underlying_client() -> None:
    fake = FakeOpenAI(FakeResponses("{}"))

    asyncio.run(OpenAIAnalysisClient(client=fake).close())

    assert fake.closed

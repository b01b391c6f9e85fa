"""OpenAI Responses API client for structured multimodal analysis."""

import json
from dataclasses import dataclass

from openai import AsyncOpenAI

from nutri_balance.errors import AnalysisError
from nutri_balance.services.analysis import AnalysisClient


@dataclass
class OpenAIAnalysisClient(AnalysisClient):
    """Analysis client backed by OpenAI Responses API."""

    client: AsyncOpenAI

    @classmethod
    def create(
        cls, api_key: str, timeout_seconds: float | None = None
    ) -> "OpenAIAnalysisClient":
        """Create an OpenAI analysis client."""
        if timeout_seconds is None:
            return cls(client=AsyncOpenAI(api_key=api_key))
        return cls(client=AsyncOpenAI(api_key=api_key, timeout=timeout_seconds))

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
        """Call OpenAI Responses API with structured outputs."""
        request_payload: dict[str, object] = {
            "model": model,
            "input": [{"role": "user", "content": parts}],
            "text": {
                "format": {
                    "type": "json_schema",
                    "name": schema_name,
                    "strict": True,
                    "schema": schema,
                }
            },
            "store": store,
        }
        if reasoning_effort:
            request_payload["reasoning"] = {"effort": reasoning_effort}

        response = await self.client.responses.create(**request_payload)
        output_text = response.output_text
        if not output_text:
            raise AnalysisError("No data returned from AI")
        try:
            payload = json.loads(output_text)
        except json.JSONDecodeError as exc:
            raise AnalysisError("AI returned invalid JSON") from exc
        if not isinstance(payload, dict):
            raise AnalysisError("AI returned a non-object JSON payload")
        return payload

    async def close(self) -> None:
        await self.client.close()

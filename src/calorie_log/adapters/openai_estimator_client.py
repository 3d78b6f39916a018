"""OpenAI Responses API client for calorie estimation."""

import json
from dataclasses import dataclass

from openai import AsyncOpenAI, OpenAIError

from calorie_log.errors import EstimatorError
from calorie_log.services.estimate import (
    ESTIMATE_SCHEMA,
    SYSTEM_PROMPT,
    EstimateRequest,
    EstimatorClient,
    build_user_prompt,
)


@dataclass
class OpenAIEstimatorClient(EstimatorClient):
    """Estimator backed by OpenAI structured outputs."""

    client: AsyncOpenAI
    model: str
    temperature: float = 0.2
    max_output_tokens: int = 650

    @classmethod
    def create(cls, api_key: str, model: str) -> "OpenAIEstimatorClient":
        """Create an OpenAI estimator client."""
        return cls(client=AsyncOpenAI(api_key=api_key), model=model)

    async def estimate(self, request: EstimateRequest) -> dict[str, object]:
        """Call the Responses API with the strict estimate schema."""
        content: list[dict[str, object]] = [
            {"type": "input_text", "text": build_user_prompt(request)}
        ]
        if request.image_data_url:
            content.append(
                {
                    "type": "input_image",
                    "image_url": request.image_data_url,
                    "detail": "low",
                }
            )
        request_payload: dict[str, object] = {
            "model": self.model,
            "store": False,
            "temperature": self.temperature,
            "max_output_tokens": self.max_output_tokens,
            "input": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": content},
            ],
            "text": {
                "format": {
                    "type": "json_schema",
                    "name": "calorie_estimate",
                    "strict": True,
                    "schema": ESTIMATE_SCHEMA,
                }
            },
        }
        try:
            response = await self.client.responses.create(**request_payload)
        except OpenAIError as exc:
            raise EstimatorError("OpenAI API error.", detail=str(exc)) from exc
        output_text = response.output_text
        if not output_text:
            raise EstimatorError("OpenAI returned an empty response")
        try:
            return json.loads(output_text)
        except json.JSONDecodeError as exc:
            raise EstimatorError(
                "Failed to parse model JSON.", detail=output_text[:4000]
            ) from exc

    async def close(self) -> None:
        await self.client.close()

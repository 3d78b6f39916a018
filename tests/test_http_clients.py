"""Tests for estimator adapters."""

import asyncio
import json

import httpx
import pytest

from calorie_log.adapters.estimate_http_client import HttpxEstimatorClient
from calorie_log.adapters.openai_estimator_client import OpenAIEstimatorClient
from calorie_log.domain.estimate import Candidate
from calorie_log.errors import EstimatorError
from calorie_log.services.estimate import EstimateRequest


class _FakeResponses:
    def __init__(self, output_text: str) -> None:
        self.output_text = output_text
        self.last_payload: dict[str, object] | None = None

    async def create(self, **kwargs):  # type: ignore[no-untyped-def]
        self.last_payload = kwargs
        return type("Resp", (), {"output_text": self.output_text})()


class _FakeOpenAI:
    def __init__(self, output_text: str) -> None:
        self.responses = _FakeResponses(output_text)


def _request() -> EstimateRequest:
    return EstimateRequest(
        meal_label="latte",
        note="",
        candidates=[Candidate(id=1, name="Oat Milk Latte", calories=120)],
        image_data_url="data:image/jpeg;base64,ZmFrZQ==",
    )


def test_openai_client_sends_schema_and_parses_output() -> None:
    fake = _FakeOpenAI(json.dumps({"estimated_calories": 120}))
    client = OpenAIEstimatorClient(client=fake, model="gpt-4o-mini")

    result = asyncio.run(client.estimate(_request()))

    assert result == {"estimated_calories": 120}
    payload = fake.responses.last_payload
    assert payload is not None
    assert payload["store"] is False
    assert payload["text"]["format"]["name"] == "calorie_estimate"
    user_content = payload["input"][1]["content"]
    assert "Oat Milk Latte" in user_content[0]["text"]
    assert user_content[1]["type"] == "input_image"


def test_openai_client_rejects_non_json_output() -> None:
    client = OpenAIEstimatorClient(client=_FakeOpenAI("not json"), model="m")

    with pytest.raises(EstimatorError):
        asyncio.run(client.estimate(_request()))


def test_openai_client_rejects_empty_output() -> None:
    client = OpenAIEstimatorClient(client=_FakeOpenAI(""), model="m")

    with pytest.raises(EstimatorError):
        asyncio.run(client.estimate(_request()))


def test_http_client_posts_wire_payload() -> None:
    seen: list[dict[str, object]] = []

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/api/estimate"
        seen.append(json.loads(request.content.decode()))
        return httpx.Response(200, json={"estimated_calories": 200})

    async_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    client = HttpxEstimatorClient(
        url="https://estimator.test/api/estimate", http_client=async_client
    )

    result = asyncio.run(client.estimate(_request()))

    assert result == {"estimated_calories": 200}
    assert seen[0]["mealLabel"] == "latte"
    assert seen[0]["note"] is None
    assert seen[0]["candidates"][0]["name"] == "Oat Milk Latte"


def test_http_client_surfaces_error_status() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(502, json={"error": "OpenAI API error."})

    async_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    client = HttpxEstimatorClient(
        url="https://estimator.test/api/estimate", http_client=async_client
    )

    with pytest.raises(EstimatorError) as excinfo:
        asyncio.run(client.estimate(_request()))

    assert "502" in str(excinfo.value)
    assert "OpenAI API error." in (excinfo.value.detail or "")

"""Tests for container wiring."""

import asyncio

from calorie_log.adapters.estimate_http_client import HttpxEstimatorClient
from calorie_log.adapters.openai_estimator_client import OpenAIEstimatorClient
from calorie_log.config import Settings
from calorie_log.containers import (
    UnconfiguredEstimatorClient,
    build_container,
    build_estimator_client,
)


def test_build_container_creates_services(settings: Settings) -> None:
    container = build_container(settings)
    try:
        food = container.library_service.upsert_food({"name": "Tea", "calories": 2})
        assert container.library_service.search("tea") == [food]
    finally:
        asyncio.run(container.close_resources())


def test_estimator_client_selection(settings: Settings) -> None:
    assert isinstance(build_estimator_client(settings), UnconfiguredEstimatorClient)

    remote = settings.model_copy(update={"estimator_url": "https://x.test/api/estimate"})
    assert isinstance(build_estimator_client(remote), HttpxEstimatorClient)

    direct = remote.model_copy(update={"openai_api_key": "sk-test"})
    assert isinstance(build_estimator_client(direct), OpenAIEstimatorClient)

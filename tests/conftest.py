"""Shared test fixtures."""

from collections.abc import Iterator
from dataclasses import dataclass, field

import pytest

from calorie_log.adapters.sqlite_store import SqliteStore
from calorie_log.config import Settings
from calorie_log.containers import AppContainer
from calorie_log.services.backup import BackupService
from calorie_log.services.estimate import (
    EstimateRequest,
    EstimateService,
    EstimatorClient,
)
from calorie_log.services.library import LibraryService
from calorie_log.services.logs import LogService

START_MS = 1_700_000_000_000


@dataclass
class FakeClock:
    """Millisecond clock that advances one second per reading."""

    current: int = START_MS
    step: int = 1_000

    def __call__(self) -> int:
        self.current += self.step
        return self.current


@dataclass
class FakeEstimatorClient(EstimatorClient):
    """Fake estimator returning a fixed payload and recording requests."""

    payload: dict[str, object] = field(
        default_factory=lambda: {
            "label": "Oat milk latte",
            "estimated_calories": 130,
            "range_low": 100,
            "range_high": 170,
            "confidence": "high",
            "matched_candidate_index": 0,
            "matched_candidate_reason": "Same drink as your usual",
            "breakdown": [
                {"item": "espresso", "calories": 5},
                {"item": "oat milk", "calories": 125},
            ],
            "questions": [],
            "assumptions": ["12 oz cup"],
        }
    )
    requests: list[EstimateRequest] = field(default_factory=list)

    async def estimate(self, request: EstimateRequest) -> dict[str, object]:
        self.requests.append(request)
        return self.payload


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> Iterator[SqliteStore]:
    sqlite_store = SqliteStore.open(":memory:")
    yield sqlite_store
    sqlite_store.close()


@pytest.fixture
def library_service(store: SqliteStore, clock: FakeClock) -> LibraryService:
    return LibraryService(store, clock=clock)


@pytest.fixture
def log_service(store: SqliteStore, clock: FakeClock) -> LogService:
    return LogService(store, clock=clock, today=lambda: "2024-05-01")


@pytest.fixture
def backup_service(store: SqliteStore, clock: FakeClock) -> BackupService:
    return BackupService(store, clock=clock)


@pytest.fixture
def estimator_client() -> FakeEstimatorClient:
    return FakeEstimatorClient()


@pytest.fixture
def estimate_service(
    estimator_client: FakeEstimatorClient, library_service: LibraryService
) -> EstimateService:
    return EstimateService(client=estimator_client, library_service=library_service)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        database_path=":memory:",
        estimator_url=None,
        openai_api_key=None,
        environment="test",
    )


@pytest.fixture
def container(  # noqa: PLR0913
    settings: Settings,
    store: SqliteStore,
    library_service: LibraryService,
    log_service: LogService,
    backup_service: BackupService,
    estimate_service: EstimateService,
) -> AppContainer:
    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        store=store,
        library_service=library_service,
        log_service=log_service,
        backup_service=backup_service,
        estimate_service=estimate_service,
        close_resources=close_resources,
    )

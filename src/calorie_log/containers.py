"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from calorie_log.adapters.estimate_http_client import HttpxEstimatorClient
from calorie_log.adapters.openai_estimator_client import OpenAIEstimatorClient
from calorie_log.adapters.sqlite_store import SqliteStore
from calorie_log.config import Settings, resolve_database_path
from calorie_log.errors import EstimatorError
from calorie_log.services.backup import BackupService
from calorie_log.services.estimate import (
    EstimateRequest,
    EstimateService,
    EstimatorClient,
)
from calorie_log.services.library import LibraryService
from calorie_log.services.logs import LogService


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    store: SqliteStore
    library_service: LibraryService
    log_service: LogService
    backup_service: BackupService
    estimate_service: EstimateService
    close_resources: Callable[[], Awaitable[None]]


class UnconfiguredEstimatorClient(EstimatorClient):
    """Estimator used when neither an endpoint nor an API key is configured."""

    async def estimate(self, request: EstimateRequest) -> dict[str, object]:
        raise EstimatorError("No estimator configured.")


def build_estimator_client(settings: Settings) -> EstimatorClient:
    """Prefer a direct OpenAI client, then a remote endpoint."""
    if settings.openai_api_key:
        return OpenAIEstimatorClient.create(
            api_key=settings.openai_api_key, model=settings.openai_model
        )
    if settings.estimator_url:
        return HttpxEstimatorClient.create(settings.estimator_url)
    return UnconfiguredEstimatorClient()


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    store = SqliteStore.open(resolve_database_path(resolved_settings.database_path))
    estimator_client = build_estimator_client(resolved_settings)
    library_service = LibraryService(store)
    log_service = LogService(store)
    backup_service = BackupService(store)
    estimate_service = EstimateService(
        client=estimator_client,
        library_service=library_service,
        candidate_limit=resolved_settings.search_limit,
    )

    async def close_resources() -> None:
        if isinstance(estimator_client, HttpxEstimatorClient | OpenAIEstimatorClient):
            await estimator_client.close()
        store.close()

    return AppContainer(
        settings=resolved_settings,
        store=store,
        library_service=library_service,
        log_service=log_service,
        backup_service=backup_service,
        estimate_service=estimate_service,
        close_resources=close_resources,
    )

"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import Body, FastAPI, HTTPException, Request, status
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, ConfigDict, Field

from calorie_log.app_logging import configure_logging
from calorie_log.containers import AppContainer
from calorie_log.domain.estimate import Candidate, EstimateOutcome, EstimateResult
from calorie_log.errors import EstimatorError, StorageError, ValidationError
from calorie_log.services.backup import backup_filename, dumps, loads
from calorie_log.services.estimate import adjust_calories


class EstimateBody(BaseModel):
    """Meal description submitted for estimation."""

    model_config = ConfigDict(populate_by_name=True)

    meal_label: str | None = Field(default=None, alias="mealLabel")
    note: str | None = None
    image_data_url: str | None = Field(default=None, alias="imageDataUrl")


class SaveEstimateBody(BaseModel):
    """Estimate the user accepted, with optional adjustments."""

    estimate: EstimateResult
    candidates: list[Candidate] = Field(default_factory=list)
    date: str | None = None
    label: str | None = None
    note: str = ""
    calories: int | None = Field(default=None, ge=0)
    delta: int | None = None
    factor: float | None = None

    def final_calories(self) -> int | None:
        """Apply the +/- and % adjustments to the accepted calorie value."""
        if self.delta is None and self.factor is None:
            return self.calories
        base = (
            self.estimate.estimated_calories if self.calories is None else self.calories
        )
        return adjust_calories(base, self.delta, self.factor)


class CaloriesBody(BaseModel):
    calories: Any = None


def create_app(container: AppContainer) -> FastAPI:  # noqa: PLR0915
    """Create a FastAPI app configured with dependencies."""
    configure_logging()
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    @app.exception_handler(ValidationError)
    async def handle_validation_error(
        request: Request, exc: ValidationError
    ) -> JSONResponse:
        return JSONResponse(status_code=400, content={"error": str(exc)})

    @app.exception_handler(StorageError)
    async def handle_storage_error(request: Request, exc: StorageError) -> JSONResponse:
        logger.exception("Storage failure on %s", request.url.path)
        return JSONResponse(
            status_code=500,
            content={"error": "Storage failure.", "detail": str(exc)},
        )

    @app.exception_handler(EstimatorError)
    async def handle_estimator_error(
        request: Request, exc: EstimatorError
    ) -> JSONResponse:
        logger.warning("Estimator failure: %s", exc)
        return JSONResponse(
            status_code=502,
            content={"error": str(exc), "detail": exc.detail},
        )

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.get("/foods")
    async def list_foods(
        request: Request, q: str | None = None, limit: int | None = None
    ) -> dict[str, object]:
        """Search the library; an empty query lists foods by recency."""
        state_container: AppContainer = request.app.state.container
        resolved_limit = (
            state_container.settings.search_limit if limit is None else limit
        )
        foods = state_container.library_service.search(q, resolved_limit)
        return {"foods": [food.to_record() for food in foods]}

    @app.post("/foods")
    async def upsert_food(
        request: Request, payload: dict[str, Any] = Body(...)
    ) -> dict[str, object]:
        """Create a food, or replace the one with the same id."""
        state_container: AppContainer = request.app.state.container
        return state_container.library_service.upsert_food(payload).to_record()

    @app.delete("/foods/{food_id}", status_code=status.HTTP_204_NO_CONTENT)
    async def delete_food(food_id: int, request: Request) -> None:
        """Delete a food; unknown ids succeed."""
        state_container: AppContainer = request.app.state.container
        state_container.library_service.delete_food(food_id)

    @app.get("/logs")
    async def list_logs(request: Request, date: str | None = None) -> dict[str, object]:
        """Return one day's entries and calorie total."""
        state_container: AppContainer = request.app.state.container
        log_service = state_container.log_service
        day = date or log_service.today()
        entries = log_service.get_logs_by_date(day)
        return {
            "date": day,
            "total": log_service.day_total(day),
            "entries": [entry.to_record() for entry in entries],
        }

    @app.post("/logs")
    async def add_log(
        request: Request, payload: dict[str, Any] = Body(...)
    ) -> dict[str, object]:
        """Record a new log entry."""
        state_container: AppContainer = request.app.state.container
        return state_container.log_service.add_log(payload).to_record()

    @app.put("/logs/{log_id}")
    async def replace_log(
        log_id: int, request: Request, payload: dict[str, Any] = Body(...)
    ) -> dict[str, object]:
        """Fully replace a log entry."""
        state_container: AppContainer = request.app.state.container
        entry = state_container.log_service.update_log({**payload, "id": log_id})
        return entry.to_record()

    @app.patch("/logs/{log_id}/calories")
    async def set_log_calories(
        log_id: int, body: CaloriesBody, request: Request
    ) -> dict[str, object]:
        """Edit the final calorie value of an entry."""
        state_container: AppContainer = request.app.state.container
        entry = state_container.log_service.set_calories(log_id, body.calories)
        if entry is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
        return entry.to_record()

    @app.delete("/logs/{log_id}", status_code=status.HTTP_204_NO_CONTENT)
    async def delete_log(log_id: int, request: Request) -> None:
        """Delete a log entry; unknown ids succeed."""
        state_container: AppContainer = request.app.state.container
        state_container.log_service.delete_log(log_id)

    @app.post("/estimate")
    async def estimate(body: EstimateBody, request: Request) -> dict[str, object]:
        """Estimate a meal against the user's library."""
        state_container: AppContainer = request.app.state.container
        outcome = await state_container.estimate_service.estimate(
            meal_label=body.meal_label or "",
            note=body.note or "",
            image_data_url=body.image_data_url,
        )
        return {
            "estimate": outcome.result.model_dump(),
            "candidates": [candidate.model_dump() for candidate in outcome.candidates],
        }

    @app.post("/estimate/save")
    async def save_estimate(
        body: SaveEstimateBody, request: Request
    ) -> dict[str, object]:
        """Persist an accepted estimate as a log entry."""
        state_container: AppContainer = request.app.state.container
        entry = state_container.log_service.log_from_estimate(
            EstimateOutcome(result=body.estimate, candidates=body.candidates),
            date=body.date,
            label=body.label,
            note=body.note,
            calories=body.final_calories(),
        )
        return entry.to_record()

    @app.get("/backup/export")
    async def export_backup(request: Request) -> Response:
        """Download a snapshot of every food and log entry as a JSON file."""
        state_container: AppContainer = request.app.state.container
        snapshot = state_container.backup_service.export_data()
        filename = backup_filename(str(snapshot["exportedAt"]))
        return Response(
            content=dumps(snapshot),
            media_type="application/json",
            headers={"Content-Disposition": f'attachment; filename="{filename}"'},
        )

    @app.post("/backup/import")
    async def import_backup(
        request: Request, wipe_first: bool = True
    ) -> dict[str, object]:
        """Restore an uploaded backup file, wiping the store first by default."""
        state_container: AppContainer = request.app.state.container
        snapshot = loads(await request.body())
        report = state_container.backup_service.import_data(
            snapshot, wipe_first=wipe_first
        )
        return {"foods": report.foods, "logs": report.logs, "wiped": report.wiped}

    @app.post("/backup/wipe", status_code=status.HTTP_204_NO_CONTENT)
    async def wipe(request: Request) -> None:
        """Delete every food and log entry."""
        state_container: AppContainer = request.app.state.container
        state_container.backup_service.wipe_all()

    return app

"""Calorie estimation anchored to the user's own food library."""

import base64
import math
from dataclasses import dataclass
from typing import Protocol

from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from calorie_log.domain.estimate import Candidate, EstimateOutcome, EstimateResult
from calorie_log.errors import EstimatorError, ValidationError
from calorie_log.services.library import DEFAULT_SEARCH_LIMIT, LibraryService

ESTIMATE_SCHEMA: dict[str, object] = {
    "type": "object",
    "additionalProperties": False,
    "properties": {
        "label": {"type": "string"},
        "estimated_calories": {"type": "integer", "minimum": 0},
        "range_low": {"type": "integer", "minimum": 0},
        "range_high": {"type": "integer", "minimum": 0},
        "confidence": {"type": "string", "enum": ["low", "medium", "high"]},
        "matched_candidate_index": {"type": "integer", "minimum": -1},
        "matched_candidate_reason": {"type": "string"},
        "breakdown": {
            "type": "array",
            "items": {
                "type": "object",
                "additionalProperties": False,
                "properties": {
                    "item": {"type": "string"},
                    "calories": {"type": "integer", "minimum": 0},
                },
                "required": ["item", "calories"],
            },
        },
        "questions": {"type": "array", "items": {"type": "string"}, "maxItems": 2},
        "assumptions": {"type": "array", "items": {"type": "string"}, "maxItems": 6},
    },
    "required": [
        "label",
        "estimated_calories",
        "range_low",
        "range_high",
        "confidence",
        "matched_candidate_index",
        "matched_candidate_reason",
        "breakdown",
        "questions",
        "assumptions",
    ],
}

SYSTEM_PROMPT = (
    "You are a careful calorie estimation assistant. Be realistic about "
    "uncertainty (oils, sauces, portion sizes). Prefer the user's local food "
    "candidates when they match. Output must follow the provided JSON schema "
    "exactly."
)


class EstimateRequest(BaseModel):
    """Request sent to the estimator."""

    meal_label: str = ""
    note: str = ""
    candidates: list[Candidate] = Field(default_factory=list)
    image_data_url: str | None = None

    def to_payload(self) -> dict[str, object]:
        """Return the wire shape expected by the estimate endpoint."""
        return {
            "mealLabel": self.meal_label or None,
            "note": self.note or None,
            "candidates": [candidate.model_dump() for candidate in self.candidates],
            "imageDataUrl": self.image_data_url,
        }


class EstimatorClient(Protocol):
    """Interface for the remote calorie estimator."""

    async def estimate(self, request: EstimateRequest) -> dict[str, object]:
        """Return the raw structured estimate."""


@dataclass
class EstimateService:
    """Gathers library candidates, calls the estimator and validates its answer."""

    client: EstimatorClient
    library_service: LibraryService
    candidate_limit: int = DEFAULT_SEARCH_LIMIT

    async def estimate(
        self,
        meal_label: str = "",
        note: str = "",
        image_bytes: bytes | None = None,
        image_data_url: str | None = None,
    ) -> EstimateOutcome:
        """Estimate a meal from a label, a note and/or a photo.

        A photo may be given as raw bytes or as an already encoded data URL.
        """
        meal_label = meal_label.strip()
        note = note.strip()
        if image_bytes:
            image_data_url = to_data_url(image_bytes)
        if not image_data_url and not meal_label and not note:
            raise ValidationError("Provide at least an image or text note/label.")
        candidates = self.library_service.candidates(
            f"{meal_label} {note}", self.candidate_limit
        )
        request = EstimateRequest(
            meal_label=meal_label,
            note=note,
            candidates=candidates,
            image_data_url=image_data_url or None,
        )
        raw = await self.client.estimate(request)
        try:
            result = EstimateResult.model_validate(raw)
        except PydanticValidationError as exc:
            raise EstimatorError(
                "Estimator returned a malformed estimate.", detail=str(exc)
            ) from exc
        return EstimateOutcome(result=result, candidates=candidates)


def build_user_prompt(request: EstimateRequest) -> str:
    """Render the meal description and library candidates for the model."""
    if request.candidates:
        lines = [
            "Your local food library candidates (choose the best match if "
            "relevant; otherwise ignore):"
        ]
        lines.extend(
            _describe_candidate(position, candidate)
            for position, candidate in enumerate(request.candidates, start=1)
        )
        candidates_text = "\n".join(lines)
    else:
        candidates_text = "No local food library candidates provided."
    return (
        "Estimate calories for the user's meal.\n"
        f"Meal label (optional): {request.meal_label or '-'}\n"
        f"User note (optional): {request.note or '-'}\n\n"
        f"{candidates_text}\n\n"
        "Rules:\n"
        "- Use the photo if provided. If not, infer from text.\n"
        "- If a candidate clearly matches the meal, base your estimate on that "
        "and set matched_candidate_index (0-based). Otherwise set -1.\n"
        "- Provide an estimated_calories (single best guess) and a realistic "
        "range_low/range_high.\n"
        "- Keep questions to max 2, only if they materially change calories.\n"
        "- Don't be overconfident: use confidence low/medium/high.\n"
        "- Breakdown items should roughly add up to estimated_calories.\n"
    )


def adjust_calories(
    value: int, delta: int | None = None, factor: float | None = None
) -> int:
    """Apply an absolute and/or relative adjustment, never going below zero."""
    adjusted = value
    if delta is not None:
        adjusted = max(0, adjusted + delta)
    if factor is not None:
        adjusted = max(0, math.floor(adjusted * (1 + factor) + 0.5))
    return adjusted


def to_data_url(image_bytes: bytes) -> str:
    """Convert bytes to a base64 data URL for image input."""
    mime_type = _detect_mime_type(image_bytes)
    encoded = base64.b64encode(image_bytes).decode("utf-8")
    return f"data:{mime_type};base64,{encoded}"


def _describe_candidate(position: int, candidate: Candidate) -> str:
    text = f"#{position}: {candidate.name} - {candidate.calories} cal"
    if candidate.portion:
        text += f" ({candidate.portion})"
    if candidate.tags:
        text += f" [{', '.join(candidate.tags)}]"
    if candidate.notes:
        text += f" | notes: {candidate.notes}"
    return text


def _detect_mime_type(image_bytes: bytes) -> str:
    """Infer a basic image MIME type from file signatures."""
    if image_bytes.startswith(b"\xff\xd8\xff"):
        return "image/jpeg"
    if image_bytes.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png"
    if image_bytes[:4] == b"RIFF" and image_bytes[8:12] == b"WEBP":
        return "image/webp"
    return "image/jpeg"

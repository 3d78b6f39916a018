"""Models for the calorie estimator boundary."""

from dataclasses import dataclass
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class Candidate(BaseModel):
    """Projection of a library food sent to the estimator."""

    id: int
    name: str
    calories: int = Field(ge=0)
    portion: str = ""
    tags: list[str] = Field(default_factory=list)
    notes: str = ""


class EstimateBreakdownItem(BaseModel):
    """Single component of an estimated meal."""

    item: str
    calories: int = Field(ge=0)


class EstimateResult(BaseModel):
    """Structured calorie estimate returned by the estimator."""

    model_config = ConfigDict(extra="ignore")

    label: str = ""
    estimated_calories: int = Field(ge=0)
    range_low: int | None = Field(default=None, ge=0)
    range_high: int | None = Field(default=None, ge=0)
    confidence: Literal["low", "medium", "high"] = "medium"
    matched_candidate_index: int = Field(default=-1, ge=-1)
    matched_candidate_reason: str = ""
    breakdown: list[EstimateBreakdownItem] = Field(default_factory=list)
    questions: list[str] = Field(default_factory=list)
    assumptions: list[str] = Field(default_factory=list)


@dataclass(frozen=True)
class EstimateOutcome:
    """Estimate together with the candidates it was anchored to."""

    result: EstimateResult
    candidates: list[Candidate]

    def matched_candidate(self) -> Candidate | None:
        """Return the candidate the estimator picked, if the index is in range."""
        index = self.result.matched_candidate_index
        if 0 <= index < len(self.candidates):
            return self.candidates[index]
        return None

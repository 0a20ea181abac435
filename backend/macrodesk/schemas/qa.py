"""QA rubric and text-analysis payloads."""
from __future__ import annotations

from pydantic import BaseModel, Field, field_validator


class TemplateIn(BaseModel):
    category: str | None = None
    template: str | None = None
    scoring_criteria: dict[str, float] | None = None

    @field_validator("scoring_criteria")
    @classmethod
    def _positive_maxima(cls, v: dict[str, float] | None) -> dict[str, float] | None:
        if v is None:
            return v
        if not v:
            raise ValueError("scoring_criteria must name at least one dimension")
        for dimension, maximum in v.items():
            if maximum <= 0:
                raise ValueError(f"max score for {dimension!r} must be positive")
        return v


class Rubric(BaseModel):
    """Cached form of a QA template."""

    category: str
    template: str
    scoring_criteria: dict[str, float] = Field(default_factory=dict)


class AnalyzeTextRequest(BaseModel):
    text: str | None = None


class AnalysisResult(BaseModel):
    match: bool
    category: str | None = None
    scores: dict[str, float] | None = None
    total_score: float | None = None


class DetailedFeedbackRequest(BaseModel):
    text: str | None = None
    category: str | None = None


class DetailedFeedbackResponse(BaseModel):
    feedback: str

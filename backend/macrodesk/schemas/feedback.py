"""Feedback submission and export parameter validation."""
from __future__ import annotations

import enum
from datetime import date

from pydantic import BaseModel, Field, StrictInt, StrictStr, field_validator, model_validator

from macrodesk.models.feedback import FeedbackType, GenerationType


class ExportType(str, enum.Enum):
    CSV = "csv"
    GOOGLE_SHEETS = "google_sheets"


class FeedbackIn(BaseModel):
    ticket_id: StrictInt
    feedback_type: FeedbackType
    feedback_presets: list[StrictStr]
    written_feedback: StrictStr | None = None
    text_editor_content: StrictStr
    generation_type: GenerationType

    @field_validator("feedback_presets")
    @classmethod
    def _presets_survive_storage(cls, v: list[str]) -> list[str]:
        # Stored comma-joined, so a preset may be neither blank nor contain a comma.
        for preset in v:
            if not preset.strip() or "," in preset:
                raise ValueError(f"invalid feedback preset {preset!r}")
        return v

    @model_validator(mode="after")
    def _negative_needs_explanation(self) -> "FeedbackIn":
        if self.feedback_type == FeedbackType.NEGATIVE and not (self.written_feedback or "").strip():
            raise ValueError("written_feedback is required for negative feedback")
        return self


class ExportFilters(BaseModel):
    """Conjunctive filters over the feedback table; all optional."""

    feedback_type: FeedbackType | None = None
    generation_type: GenerationType | None = None
    start_date: date | None = None
    end_date: date | None = None
    export_type: ExportType = Field(default=ExportType.CSV)


class MessageResponse(BaseModel):
    message: str


class SheetsExportResponse(MessageResponse):
    url: str

"""Feedback model: agent verdicts on suggested replies."""
from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import BigInteger, CheckConstraint, DateTime, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from macrodesk.db import Base


class FeedbackType(str, enum.Enum):
    POSITIVE = "positive"
    NEGATIVE = "negative"


class GenerationType(str, enum.Enum):
    MACRO = "macro"
    AI = "ai"


class FeedbackRecord(Base):
    """Append-only feedback row; read back by the export endpoints."""

    __tablename__ = "feedback"
    __table_args__ = (
        CheckConstraint("feedback_type IN ('positive', 'negative')", name="ck_feedback_type"),
        CheckConstraint("generation_type IN ('macro', 'ai')", name="ck_generation_type"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    ticket_id: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)
    feedback_type: Mapped[str] = mapped_column(String(16), nullable=False)
    feedback_presets: Mapped[str] = mapped_column(Text, nullable=False, default="", comment="comma-joined")
    written_feedback: Mapped[str | None] = mapped_column(Text, nullable=True)
    text_editor_content: Mapped[str] = mapped_column(Text, nullable=False)
    generation_type: Mapped[str] = mapped_column(String(16), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False, index=True
    )

    @property
    def presets(self) -> list[str]:
        return [p for p in (self.feedback_presets or "").split(",") if p]

    def __repr__(self) -> str:
        return f"<FeedbackRecord id={self.id} ticket={self.ticket_id} type={self.feedback_type}>"

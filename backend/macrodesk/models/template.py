"""QA rubric templates, one per ticket category."""
from __future__ import annotations

from datetime import datetime

from sqlalchemy import JSON, DateTime, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from macrodesk.db import Base


class QATemplate(Base):
    __tablename__ = "templates"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    category: Mapped[str] = mapped_column(String(128), nullable=False, unique=True)
    template: Mapped[str] = mapped_column(Text, nullable=False)
    scoring_criteria: Mapped[dict] = mapped_column(
        JSON, nullable=False, comment="dimension -> max score"
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    def __repr__(self) -> str:
        return f"<QATemplate category={self.category!r}>"

"""Macro model: one row per comment-producing helpdesk macro."""
from __future__ import annotations

from sqlalchemy import JSON, BigInteger, Boolean, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from macrodesk.db import Base


class MacroRecord(Base):
    """Snapshot of a helpdesk macro, replaced wholesale by each sync run."""

    __tablename__ = "macros"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)
    # Insertion order of the last sync; list order follows it.
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0, index=True)
    url: Mapped[str | None] = mapped_column(Text, nullable=True)
    title: Mapped[str | None] = mapped_column(String(512), nullable=True)
    active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    updated_at: Mapped[str | None] = mapped_column(String(64), nullable=True, comment="helpdesk timestamp")
    created_at: Mapped[str | None] = mapped_column(String(64), nullable=True, comment="helpdesk timestamp")
    actions: Mapped[list] = mapped_column(JSON, nullable=False, default=list)

    def __repr__(self) -> str:
        return f"<MacroRecord id={self.id} title={self.title!r}>"

"""Macro wire/cache representation."""
from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

COMMENT_FIELD = "comment_value"


class MacroAction(BaseModel):
    model_config = ConfigDict(extra="allow")

    field: str
    value: Any = None


class Macro(BaseModel):
    """A helpdesk macro as cached and returned by the API.

    Unknown helpdesk attributes are dropped; ``actions`` is always a list.
    """

    model_config = ConfigDict(extra="ignore")

    id: int
    url: str | None = None
    title: str | None = None
    active: bool = True
    updated_at: str | None = None
    created_at: str | None = None
    actions: list[MacroAction] = Field(default_factory=list)

    @field_validator("actions", mode="before")
    @classmethod
    def _none_actions(cls, v: Any) -> Any:
        return [] if v is None else v

    def comment_templates(self) -> list[str]:
        """Template strings of every comment-producing action, in order."""
        return [
            action.value
            for action in self.actions
            if action.field == COMMENT_FIELD and isinstance(action.value, str)
        ]

    @property
    def is_comment_producing(self) -> bool:
        return any(action.field == COMMENT_FIELD for action in self.actions)


class MacroComparisonRequest(BaseModel):
    text: str | None = None


class MacroComparisonResponse(BaseModel):
    match: bool
    macro: Macro | None = None

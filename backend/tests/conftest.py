from __future__ import annotations

import json
from types import SimpleNamespace
from typing import Any

import pytest

from macrodesk.config import Settings
from macrodesk.db import build_engine, build_session_factory, create_schema
from macrodesk.schemas.macro import Macro


class FakeCache:
    """In-memory stand-in for the Redis cache."""

    def __init__(self) -> None:
        self.data: dict[str, str] = {}
        self.sets: list[str] = []
        self.closed = False

    async def get(self, key: str) -> str | None:
        return self.data.get(key)

    async def set(self, key: str, value: str) -> None:
        self.sets.append(key)
        self.data[key] = value

    async def delete(self, key: str) -> None:
        self.data.pop(key, None)

    async def close(self) -> None:
        self.closed = True


class FakeHelpdesk:
    def __init__(self, macros: list[dict] | None = None, error: Exception | None = None) -> None:
        self.macros = macros or []
        self.error = error
        self.calls = 0

    async def fetch_active_macros(self) -> list[Macro]:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return [Macro.model_validate(m) for m in self.macros]


def tool_response(name: str, arguments: dict[str, Any]) -> SimpleNamespace:
    call = SimpleNamespace(function=SimpleNamespace(name=name, arguments=json.dumps(arguments)))
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(tool_calls=[call], content=None))])


def text_response(content: str) -> SimpleNamespace:
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(tool_calls=None, content=content))])


class FakeOpenAI:
    """Replays queued chat completion responses and records each request."""

    def __init__(self, responses: list[Any]) -> None:
        self.responses = list(responses)
        self.requests: list[dict[str, Any]] = []
        self.chat = SimpleNamespace(completions=SimpleNamespace(create=self._create))

    async def _create(self, **kwargs: Any) -> Any:
        self.requests.append(kwargs)
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    async def close(self) -> None:
        return None


def macro(macro_id: int, template: str | None, *, title: str | None = None) -> dict:
    actions = [{"field": "status", "value": "solved"}]
    if template is not None:
        actions.append({"field": "comment_value", "value": template})
    return {
        "id": macro_id,
        "url": f"https://acme.zendesk.com/api/v2/macros/{macro_id}.json",
        "title": title or f"Macro {macro_id}",
        "active": True,
        "updated_at": "2024-05-01T10:00:00Z",
        "created_at": "2024-01-01T10:00:00Z",
        "actions": actions,
    }


async def open_database(url: str):
    engine = build_engine(url)
    await create_schema(engine)
    return engine, build_session_factory(engine)


@pytest.fixture
def database_url(tmp_path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path / 'macrodesk.db'}"


@pytest.fixture
def test_settings(database_url) -> Settings:
    return Settings(
        DATABASE_URL=database_url,
        APP_ENV="test",
        MACRO_SYNC_ON_STARTUP=False,
        OPENAI_API_KEY=None,
        GOOGLE_SERVICE_ACCT_KEY=None,
        ZENDESK_DOMAIN=None,
    )

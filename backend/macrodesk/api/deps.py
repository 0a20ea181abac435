"""FastAPI dependencies resolving collaborators from ``app.state``."""
from __future__ import annotations

from fastapi import Request

from macrodesk.services.container import AppServices


def get_services(request: Request) -> AppServices:
    return request.app.state.services

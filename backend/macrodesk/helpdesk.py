"""Zendesk macro listing client.

Drains the cursor-paginated ``/api/v2/macros/active.json`` endpoint and
returns one de-duplicated list of macros in listing order.
"""
from __future__ import annotations

import logging
from typing import Any

import httpx

from macrodesk.config import Settings
from macrodesk.errors import CollaboratorError, FeatureNotConfiguredError
from macrodesk.metrics import HELPDESK_PAGES_FETCHED_TOTAL
from macrodesk.schemas.macro import Macro

logger = logging.getLogger(__name__)

USER_AGENT = "Macrodesk/1.0 (macro sync)"


def _next_page_url(payload: dict[str, Any]) -> str | None:
    meta = payload.get("meta") or {}
    links = payload.get("links") or {}
    if meta.get("has_more") and links.get("next"):
        return str(links["next"])
    return None


def collect_macros(pages: list[dict[str, Any]]) -> list[Macro]:
    """Merge page payloads into one list, keeping the first copy of each id."""
    seen: set[int] = set()
    macros: list[Macro] = []
    for payload in pages:
        for row in payload.get("macros") or []:
            macro = Macro.model_validate(row)
            if macro.id in seen:
                continue
            seen.add(macro.id)
            macros.append(macro)
    return macros


class ZendeskMacroClient:
    """Async client for the Zendesk macros API."""

    def __init__(
        self,
        domain: str,
        email: str,
        api_token: str,
        *,
        page_size: int = 100,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = f"https://{domain}.zendesk.com/api/v2"
        self.page_size = page_size
        self._auth = httpx.BasicAuth(f"{email}/token", api_token)
        self._timeout = timeout
        self._transport = transport

    @classmethod
    def from_settings(cls, settings: Settings) -> "ZendeskMacroClient":
        missing = [
            name
            for name in ("ZENDESK_DOMAIN", "ZENDESK_EMAIL", "ZENDESK_API_TOKEN")
            if not getattr(settings, name)
        ]
        if missing:
            raise FeatureNotConfiguredError(f"Helpdesk sync disabled, missing: {', '.join(missing)}")
        return cls(
            settings.ZENDESK_DOMAIN,
            settings.ZENDESK_EMAIL,
            settings.ZENDESK_API_TOKEN,
            page_size=settings.ZENDESK_PAGE_SIZE,
            timeout=settings.HTTP_TIMEOUT_S,
        )

    async def fetch_active_macros(self) -> list[Macro]:
        pages: list[dict[str, Any]] = []
        url: str | None = f"{self.base_url}/macros/active.json"
        params: dict[str, Any] | None = {"page[size]": self.page_size}

        async with httpx.AsyncClient(
            auth=self._auth,
            timeout=self._timeout,
            headers={"User-Agent": USER_AGENT, "Accept": "application/json"},
            transport=self._transport,
        ) as client:
            while url:
                try:
                    resp = await client.get(url, params=params)
                    resp.raise_for_status()
                    payload = resp.json()
                except httpx.HTTPError as exc:
                    logger.error("Helpdesk macro listing failed at %s: %s", url, exc)
                    raise CollaboratorError(f"Helpdesk request failed: {exc}") from exc
                HELPDESK_PAGES_FETCHED_TOTAL.inc()
                pages.append(payload)
                url = _next_page_url(payload)
                # The next link already carries the cursor and page size.
                params = None

        macros = collect_macros(pages)
        logger.info("Fetched %s macros across %s pages", len(macros), len(pages))
        return macros

"""Google Sheets export of feedback rows.

Creates a new spreadsheet per export, writes a header plus one row per
feedback record, then opens it to anyone with the link as a writer.
"""
from __future__ import annotations

import asyncio
import base64
import binascii
import json
import logging
from typing import Any, Iterable

import httplib2
from google.auth.exceptions import GoogleAuthError
from google.oauth2 import service_account
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from macrodesk.config import Settings
from macrodesk.errors import CollaboratorError, FeatureNotConfiguredError
from macrodesk.models.feedback import FeedbackRecord

logger = logging.getLogger(__name__)

SCOPES = [
    "https://www.googleapis.com/auth/spreadsheets",
    "https://www.googleapis.com/auth/drive",
]

SHEET_HEADER = [
    "Ticket ID",
    "Feedback Type",
    "Feedback Presets",
    "Written Feedback",
    "Text Editor Content",
    "Generation Type",
    "Created At",
]

SPREADSHEET_URL = "https://docs.google.com/spreadsheets/d/{spreadsheet_id}/edit"

# Google API failures plus transport errors (timeouts, resets) from the HTTP layer.
_EXPORT_ERRORS = (HttpError, GoogleAuthError, httplib2.HttpLib2Error, OSError)


def feedback_sheet_rows(rows: Iterable[FeedbackRecord]) -> list[list[Any]]:
    values: list[list[Any]] = [list(SHEET_HEADER)]
    for row in rows:
        values.append(
            [
                row.ticket_id,
                row.feedback_type,
                row.feedback_presets,
                row.written_feedback or "",
                row.text_editor_content,
                row.generation_type,
                row.created_at.isoformat() if row.created_at else "",
            ]
        )
    return values


def decode_service_account(encoded: str) -> dict[str, Any]:
    try:
        return json.loads(base64.b64decode(encoded).decode("utf-8"))
    except (binascii.Error, UnicodeDecodeError, ValueError) as exc:
        raise FeatureNotConfiguredError("GOOGLE_SERVICE_ACCT_KEY is not valid base64 JSON") from exc


class GoogleSheetsExporter:
    """Thin wrapper over the Sheets v4 and Drive v3 discovery clients."""

    def __init__(self, sheets_service: Any, drive_service: Any, *, title: str, sheet_name: str):
        self._sheets = sheets_service
        self._drive = drive_service
        self.title = title
        self.sheet_name = sheet_name

    @classmethod
    def from_settings(cls, settings: Settings) -> "GoogleSheetsExporter":
        if not settings.GOOGLE_SERVICE_ACCT_KEY:
            raise FeatureNotConfiguredError("Google Sheets export disabled, missing GOOGLE_SERVICE_ACCT_KEY")
        info = decode_service_account(settings.GOOGLE_SERVICE_ACCT_KEY)
        try:
            credentials = service_account.Credentials.from_service_account_info(info, scopes=SCOPES)
        except (GoogleAuthError, ValueError) as exc:
            raise FeatureNotConfiguredError(f"Invalid Google service account: {exc}") from exc
        return cls(
            build("sheets", "v4", credentials=credentials, cache_discovery=False),
            build("drive", "v3", credentials=credentials, cache_discovery=False),
            title=settings.SHEETS_EXPORT_TITLE,
            sheet_name=settings.SHEETS_EXPORT_SHEET,
        )

    def _create_spreadsheet(self) -> str:
        body = {
            "properties": {"title": self.title},
            "sheets": [{"properties": {"title": self.sheet_name}}],
        }
        created = self._sheets.spreadsheets().create(body=body, fields="spreadsheetId").execute()
        return created["spreadsheetId"]

    def _write_rows(self, spreadsheet_id: str, values: list[list[Any]]) -> None:
        self._sheets.spreadsheets().values().update(
            spreadsheetId=spreadsheet_id,
            range=f"{self.sheet_name}!A1",
            valueInputOption="RAW",
            body={"values": values},
        ).execute()

    def _share_publicly(self, spreadsheet_id: str) -> None:
        self._drive.permissions().create(
            fileId=spreadsheet_id,
            body={"role": "writer", "type": "anyone"},
        ).execute()

    def export_sync(self, rows: Iterable[FeedbackRecord]) -> str:
        values = feedback_sheet_rows(rows)
        try:
            spreadsheet_id = self._create_spreadsheet()
        except _EXPORT_ERRORS as exc:
            logger.error("Spreadsheet creation failed: %s", exc)
            raise CollaboratorError(f"Error creating spreadsheet: {exc}") from exc

        # Not rolled back: a failure below leaves an empty or private spreadsheet behind.
        try:
            self._write_rows(spreadsheet_id, values)
            self._share_publicly(spreadsheet_id)
        except _EXPORT_ERRORS as exc:
            logger.error(
                "Spreadsheet created but not populated/shared: %s",
                exc,
                extra={"spreadsheet_id": spreadsheet_id, "incident_code": "SHEETS_PARTIAL_EXPORT"},
            )
            raise CollaboratorError(f"Error populating spreadsheet {spreadsheet_id}: {exc}") from exc

        logger.info("Exported %s feedback rows to spreadsheet %s", len(values) - 1, spreadsheet_id)
        return SPREADSHEET_URL.format(spreadsheet_id=spreadsheet_id)

    async def export(self, rows: list[FeedbackRecord]) -> str:
        """Run the blocking discovery client off the event loop."""
        return await asyncio.to_thread(self.export_sync, rows)

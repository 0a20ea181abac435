"""CSV rendering of feedback rows."""
from __future__ import annotations

import csv
import io
import json
from typing import Any, Iterable

from macrodesk.models.feedback import FeedbackRecord

CSV_FIELDS = [
    "id",
    "ticket_id",
    "feedback_type",
    "feedback_presets",
    "written_feedback",
    "text_editor_content",
    "generation_type",
    "created_at",
]

EXPORT_FILENAME = "feedback_export.csv"


def feedback_to_dict(row: FeedbackRecord) -> dict[str, Any]:
    return {
        "id": row.id,
        "ticket_id": row.ticket_id,
        "feedback_type": row.feedback_type,
        "feedback_presets": row.presets,
        "written_feedback": row.written_feedback,
        "text_editor_content": row.text_editor_content,
        "generation_type": row.generation_type,
        "created_at": row.created_at.isoformat() if row.created_at else None,
    }


def render_csv(rows: Iterable[FeedbackRecord]) -> str:
    """One CSV line per feedback row; presets are written as a JSON array."""
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=CSV_FIELDS, extrasaction="ignore")
    writer.writeheader()
    for row in rows:
        record = feedback_to_dict(row)
        record["feedback_presets"] = json.dumps(record["feedback_presets"], ensure_ascii=False)
        writer.writerow({k: ("" if v is None else v) for k, v in record.items()})
    return buffer.getvalue()

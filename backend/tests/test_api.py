import asyncio
import json

import pytest
from fastapi.testclient import TestClient

from conftest import FakeCache, FakeHelpdesk, FakeOpenAI, macro, tool_response, text_response
from macrodesk.export.csv_export import CSV_FIELDS
from macrodesk.main import create_app
from macrodesk.qa.analyzer import TextAnalyzer
from macrodesk.services.container import build_services


def _client(settings, *, cache=None, helpdesk=None, openai=None) -> TestClient:
    services = asyncio.run(
        build_services(
            settings,
            cache=cache or FakeCache(),
            helpdesk=helpdesk or FakeHelpdesk(),
            analyzer=TextAnalyzer(openai, model="test") if openai is not None else None,
        )
    )
    return TestClient(create_app(services=services))


def test_macro_comparison_after_sync(test_settings) -> None:
    helpdesk = FakeHelpdesk(
        [
            macro(1, "Hello {{name}}, your refund of {{amount}} is on its way."),
            macro(2, None),
            macro(3, "Hello {{name}}"),
        ]
    )
    cache = FakeCache()
    with _client(test_settings, cache=cache, helpdesk=helpdesk) as client:
        sync = client.post("/v1/sync-macros").json()
        assert sync["ok"] is True and sync["saved"] == 2

        resp = client.post("/v1/macro-comparison", json={"text": "hello Ana,  your refund of $5 is on its way."})
        assert resp.status_code == 200
        body = resp.json()
        assert body["match"] is True
        assert body["macro"]["id"] == 1

        resp = client.post("/v1/macro-comparison", json={"text": "Goodbye"})
        assert resp.json() == {"match": False}

        listed = client.get("/v1/list-macros").json()
        assert [m["id"] for m in listed] == [1, 3]


def test_list_macros_repopulates_cleared_cache(test_settings) -> None:
    cache = FakeCache()
    with _client(test_settings, cache=cache, helpdesk=FakeHelpdesk([macro(8, "Hi")])) as client:
        client.post("/v1/sync-macros")
        cache.data.clear()
        first = client.get("/v1/list-macros").json()
        assert json.loads(cache.data["macros"]) == first
        assert client.get("/v1/list-macros").json() == first


@pytest.mark.parametrize("body", [{}, {"text": ""}])
def test_macro_comparison_requires_text(test_settings, body: dict) -> None:
    with _client(test_settings) as client:
        resp = client.post("/v1/macro-comparison", json=body)
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Text is required"


def test_feedback_submission_and_csv_export(test_settings) -> None:
    base = {
        "ticket_id": 101,
        "feedback_presets": ["helpful"],
        "text_editor_content": "Here is your tracking link.",
        "generation_type": "ai",
    }
    with _client(test_settings) as client:
        rejected = client.post("/v1/post-feedback", json={**base, "feedback_type": "negative"})
        assert rejected.status_code == 400

        accepted = client.post("/v1/post-feedback", json={**base, "feedback_type": "positive"})
        assert accepted.status_code == 200
        assert accepted.json() == {"message": "Feedback submitted successfully"}

        client.post(
            "/v1/post-feedback",
            json={**base, "ticket_id": 102, "feedback_type": "negative", "written_feedback": "Wrong link"},
        )

        export = client.get("/v1/export-feedback", params={"export_type": "csv", "feedback_type": "positive"})
        assert export.status_code == 200
        assert export.headers["content-type"].startswith("text/csv")
        assert 'filename="feedback_export.csv"' in export.headers["content-disposition"]
        lines = export.text.strip().splitlines()
        assert len(lines) == 2
        assert lines[1].split(",")[1] == "101"


@pytest.mark.parametrize(
    "params",
    [
        {"export_type": "pdf"},
        {"feedback_type": "meh"},
        {"generation_type": "robot"},
        {"start_date": "yesterday"},
    ],
)
def test_export_rejects_invalid_params(test_settings, params: dict) -> None:
    with _client(test_settings) as client:
        assert client.get("/v1/export-feedback", params=params).status_code == 400


def test_sheets_export_without_credentials_is_unavailable(test_settings) -> None:
    with _client(test_settings) as client:
        resp = client.get("/v1/export-feedback", params={"export_type": "google_sheets"})
        assert resp.status_code == 503


def test_templates_and_analysis_flow(test_settings) -> None:
    openai = FakeOpenAI(
        [
            tool_response("classify_text", {"category": "refund"}),
            tool_response("analyze_text", {"tone": 7, "process": 9, "empathy": 6}),
            text_response("Mention the refund timeline."),
        ]
    )
    with _client(test_settings, openai=openai) as client:
        assert client.post("/v1/templates", json={"category": "refund"}).status_code == 400
        saved = client.post("/v1/templates", json={"category": "refund", "template": "Confirm amount and timeline."})
        assert saved.json() == {"message": "Template submitted successfully"}

        analysis = client.post("/v1/analyze-text", json={"text": "We refunded you."}).json()
        assert analysis == {
            "match": True,
            "category": "refund",
            "scores": {"tone": 7.0, "process": 9.0, "empathy": 6.0},
            "total_score": 22.0,
        }

        unknown = client.post("/v1/detailed-feedback", json={"text": "x", "category": "billing"})
        assert unknown.status_code == 400
        assert unknown.json()["detail"] == "Invalid category"

        detailed = client.post("/v1/detailed-feedback", json={"text": "x", "category": "refund"})
        assert detailed.json() == {"feedback": "Mention the refund timeline."}


def test_analysis_without_model_credentials_is_unavailable(test_settings) -> None:
    with _client(test_settings) as client:
        assert client.post("/v1/analyze-text", json={}).status_code == 400
        assert client.post("/v1/analyze-text", json={"text": "hi"}).status_code == 503


def test_health_and_metrics(test_settings) -> None:
    with _client(test_settings) as client:
        assert client.get("/health").json() == {"status": "ok", "service": "macrodesk"}
        metrics = client.get("/metrics")
        assert metrics.status_code == 200
        assert "macrodesk_macro_sync_runs_total" in metrics.text


def test_matched_macro_keeps_null_fields_like_list_macros(test_settings) -> None:
    bare = macro(9, "Thanks for waiting")
    bare["url"] = None
    bare["title"] = None
    with _client(test_settings, helpdesk=FakeHelpdesk([bare])) as client:
        client.post("/v1/sync-macros")
        matched = client.post("/v1/macro-comparison", json={"text": "thanks for  waiting"}).json()
        listed = client.get("/v1/list-macros").json()
    assert matched["match"] is True
    assert matched["macro"] == listed[0]
    assert matched["macro"]["url"] is None and matched["macro"]["title"] is None


def test_feedback_with_unstorable_preset_is_rejected_without_write(test_settings) -> None:
    body = {
        "ticket_id": 7,
        "feedback_type": "positive",
        "feedback_presets": ["slow, but correct"],
        "text_editor_content": "Done.",
        "generation_type": "macro",
    }
    with _client(test_settings) as client:
        assert client.post("/v1/post-feedback", json=body).status_code == 400
        export = client.get("/v1/export-feedback")
    assert export.text.strip().splitlines() == [",".join(CSV_FIELDS)]

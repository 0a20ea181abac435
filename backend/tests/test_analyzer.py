import asyncio

import pytest
from openai import APIConnectionError
import httpx

from conftest import FakeOpenAI, text_response, tool_response
from macrodesk.config import Settings
from macrodesk.errors import CollaboratorError, FeatureNotConfiguredError
from macrodesk.qa.analyzer import TextAnalyzer, clamp_scores, scoring_tool
from macrodesk.schemas.qa import Rubric

RUBRICS = {
    "refund": Rubric(
        category="refund",
        template="Acknowledge, confirm amount, give timeline.",
        scoring_criteria={"tone": 10, "process": 10, "empathy": 10},
    ),
    "shipping_issue": Rubric(
        category="shipping_issue",
        template="Apologise and share tracking.",
        scoring_criteria={"tone": 1, "empathy": 1},
    ),
}


def test_classify_then_score_returns_bounded_scores() -> None:
    client = FakeOpenAI(
        [
            tool_response("classify_text", {"category": "refund"}),
            tool_response("analyze_text", {"tone": 8, "process": 12, "empathy": -1}),
        ]
    )
    result = asyncio.run(TextAnalyzer(client, model="test-model").classify_and_score("Refund sent", RUBRICS))

    assert result.match is True
    assert result.category == "refund"
    assert result.scores == {"tone": 8.0, "process": 10.0, "empathy": 0.0}
    assert result.total_score == 18.0

    classify_request = client.requests[0]
    enum = classify_request["tools"][0]["function"]["parameters"]["properties"]["category"]["enum"]
    assert enum == ["refund", "shipping_issue", "false"]
    assert classify_request["tool_choice"]["function"]["name"] == "classify_text"
    assert classify_request["model"] == "test-model"
    assert "Acknowledge, confirm amount" in client.requests[1]["messages"][0]["content"]


def test_no_category_is_a_no_match_without_scoring() -> None:
    client = FakeOpenAI([tool_response("classify_text", {"category": "false"})])
    result = asyncio.run(TextAnalyzer(client, model="m").classify_and_score("hmm", RUBRICS))
    assert result.match is False
    assert result.category is None and result.scores is None
    assert len(client.requests) == 1


def test_empty_category_set_skips_the_model() -> None:
    client = FakeOpenAI([])
    result = asyncio.run(TextAnalyzer(client, model="m").classify_and_score("hmm", {}))
    assert result.match is False
    assert client.requests == []


def test_unknown_category_from_model_is_an_error() -> None:
    client = FakeOpenAI([tool_response("classify_text", {"category": "billing"})])
    with pytest.raises(CollaboratorError, match="Template for classified category not found"):
        asyncio.run(TextAnalyzer(client, model="m").classify_and_score("hmm", RUBRICS))


def test_model_errors_surface_with_message() -> None:
    request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
    client = FakeOpenAI([APIConnectionError(request=request)])
    with pytest.raises(CollaboratorError, match="Error analyzing text with OpenAI"):
        asyncio.run(TextAnalyzer(client, model="m").classify("text", ["refund"]))


def test_detailed_feedback_is_free_text() -> None:
    client = FakeOpenAI([text_response("Open with empathy before the policy.")])
    feedback = asyncio.run(TextAnalyzer(client, model="m").detailed_feedback("No.", RUBRICS["refund"]))
    assert feedback == "Open with empathy before the policy."
    assert "tools" not in client.requests[0]
    assert "tone, process, empathy" in client.requests[0]["messages"][0]["content"]


def test_scoring_tool_uses_rubric_maxima() -> None:
    props = scoring_tool({"tone": 1, "empathy": 5})["function"]["parameters"]["properties"]
    assert props == {
        "tone": {"type": "number", "minimum": 0, "maximum": 1},
        "empathy": {"type": "number", "minimum": 0, "maximum": 5},
    }


def test_clamp_scores_rejects_missing_or_non_numeric() -> None:
    with pytest.raises(CollaboratorError):
        clamp_scores({"tone": 1}, {"tone": 10, "empathy": 10})
    with pytest.raises(CollaboratorError):
        clamp_scores({"tone": "great"}, {"tone": 10})


@pytest.mark.parametrize("value", ["nan", float("inf"), "-inf"])
def test_clamp_scores_rejects_non_finite(value) -> None:
    with pytest.raises(CollaboratorError, match="non-finite"):
        clamp_scores({"tone": value}, {"tone": 10})


def test_from_settings_requires_api_key() -> None:
    with pytest.raises(FeatureNotConfiguredError):
        TextAnalyzer.from_settings(Settings(OPENAI_API_KEY=None))

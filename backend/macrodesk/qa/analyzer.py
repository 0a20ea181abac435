"""QA text analysis delegated to an OpenAI chat model.

Two structured steps use forced tool calls: ``classify_text`` picks one
category from the configured rubric set (or ``"false"``), then
``analyze_text`` scores the text along that rubric's dimensions. A third,
unstructured call returns free-text coaching for a given rubric.
"""
from __future__ import annotations

import json
import logging
import math
from typing import Any

from openai import AsyncOpenAI, OpenAIError

from macrodesk.config import Settings
from macrodesk.errors import CollaboratorError, FeatureNotConfiguredError
from macrodesk.metrics import LLM_REQUEST_LATENCY_SECONDS, LLM_REQUESTS_TOTAL
from macrodesk.schemas.qa import AnalysisResult, Rubric

logger = logging.getLogger(__name__)

NO_CATEGORY = "false"


def classification_tool(categories: list[str]) -> dict[str, Any]:
    return {
        "type": "function",
        "function": {
            "name": "classify_text",
            "description": "Classify the text into a category",
            "parameters": {
                "type": "object",
                "properties": {
                    "category": {"type": "string", "enum": [*categories, NO_CATEGORY]},
                },
                "required": ["category"],
            },
        },
    }


def scoring_tool(criteria: dict[str, float]) -> dict[str, Any]:
    return {
        "type": "function",
        "function": {
            "name": "analyze_text",
            "description": "Analyze the text against the template",
            "parameters": {
                "type": "object",
                "properties": {
                    dimension: {"type": "number", "minimum": 0, "maximum": maximum}
                    for dimension, maximum in criteria.items()
                },
                "required": list(criteria),
            },
        },
    }


def clamp_scores(raw: dict[str, Any], criteria: dict[str, float]) -> dict[str, float]:
    """Keep only rubric dimensions, each forced into ``[0, max]``."""
    scores: dict[str, float] = {}
    for dimension, maximum in criteria.items():
        if dimension not in raw:
            raise CollaboratorError(f"Model omitted score for {dimension!r}")
        try:
            value = float(raw[dimension])
        except (TypeError, ValueError) as exc:
            raise CollaboratorError(f"Model returned non-numeric score for {dimension!r}") from exc
        if not math.isfinite(value):
            raise CollaboratorError(f"Model returned non-finite score for {dimension!r}")
        scores[dimension] = min(max(value, 0.0), float(maximum))
    return scores


def _tool_arguments(response: Any, expected: str) -> dict[str, Any]:
    message = response.choices[0].message
    calls = message.tool_calls or []
    for call in calls:
        if call.function.name == expected:
            try:
                return json.loads(call.function.arguments or "{}")
            except ValueError as exc:
                raise CollaboratorError(f"Model returned malformed {expected} arguments") from exc
    raise CollaboratorError(f"Model did not call {expected}")


class TextAnalyzer:
    def __init__(self, client: AsyncOpenAI, *, model: str):
        self._client = client
        self.model = model

    @classmethod
    def from_settings(cls, settings: Settings) -> "TextAnalyzer":
        if not settings.OPENAI_API_KEY:
            raise FeatureNotConfiguredError("Text analysis disabled, missing OPENAI_API_KEY")
        client = AsyncOpenAI(
            api_key=settings.OPENAI_API_KEY,
            timeout=settings.OPENAI_TIMEOUT_S,
            max_retries=0,
        )
        return cls(client, model=settings.OPENAI_MODEL)

    async def _complete(self, operation: str, **kwargs: Any) -> Any:
        try:
            with LLM_REQUEST_LATENCY_SECONDS.labels(operation=operation).time():
                response = await self._client.chat.completions.create(model=self.model, **kwargs)
        except OpenAIError as exc:
            LLM_REQUESTS_TOTAL.labels(operation=operation, outcome="error").inc()
            logger.error("OpenAI %s call failed: %s", operation, exc)
            raise CollaboratorError(f"Error analyzing text with OpenAI: {exc}") from exc
        LLM_REQUESTS_TOTAL.labels(operation=operation, outcome="ok").inc()
        return response

    async def classify(self, text: str, categories: list[str]) -> str | None:
        if not categories:
            return None
        response = await self._complete(
            "classify",
            messages=[
                {
                    "role": "system",
                    "content": (
                        "Classify the following text into one of these categories: "
                        f"{', '.join(categories)}. If you can't determine the category, return '{NO_CATEGORY}'."
                    ),
                },
                {"role": "user", "content": text},
            ],
            tools=[classification_tool(categories)],
            tool_choice={"type": "function", "function": {"name": "classify_text"}},
        )
        category = _tool_arguments(response, "classify_text").get("category")
        logger.info("Classification result: %s", category)
        if not category or category == NO_CATEGORY:
            return None
        return str(category)

    async def score(self, text: str, rubric: Rubric) -> dict[str, float]:
        dimensions = ", ".join(
            f"{name.capitalize()} (max {maximum:g})" for name, maximum in rubric.scoring_criteria.items()
        )
        response = await self._complete(
            "score",
            messages=[
                {
                    "role": "system",
                    "content": (
                        f'Analyze the following text based on the template: "{rubric.template}". '
                        f"Provide a score in {len(rubric.scoring_criteria)} categories: {dimensions}."
                    ),
                },
                {"role": "user", "content": text},
            ],
            tools=[scoring_tool(rubric.scoring_criteria)],
            tool_choice={"type": "function", "function": {"name": "analyze_text"}},
        )
        return clamp_scores(_tool_arguments(response, "analyze_text"), rubric.scoring_criteria)

    async def classify_and_score(self, text: str, rubrics: dict[str, Rubric]) -> AnalysisResult:
        category = await self.classify(text, list(rubrics))
        if category is None:
            return AnalysisResult(match=False)
        rubric = rubrics.get(category)
        if rubric is None:
            raise CollaboratorError("Template for classified category not found")
        scores = await self.score(text, rubric)
        return AnalysisResult(
            match=True,
            category=category,
            scores=scores,
            total_score=sum(scores.values()),
        )

    async def detailed_feedback(self, text: str, rubric: Rubric) -> str:
        focus = ", ".join(rubric.scoring_criteria) or "tone, process, and empathy"
        response = await self._complete(
            "detailed_feedback",
            messages=[
                {
                    "role": "system",
                    "content": (
                        f'Provide detailed feedback on the following text based on the template: "{rubric.template}". '
                        f"Focus on areas of improvement for {focus}."
                    ),
                },
                {"role": "user", "content": text},
            ],
        )
        return response.choices[0].message.content or ""

    async def close(self) -> None:
        await self._client.close()

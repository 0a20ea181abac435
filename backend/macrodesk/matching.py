"""Macro template matcher.

Turns a macro's reply template (text with ``{{placeholder}}`` tokens) into a
predicate deciding whether free-form agent text is the same reply, modulo
whitespace, letter case and whatever was substituted into the placeholders.
"""
from __future__ import annotations

import logging
import re
from functools import lru_cache

logger = logging.getLogger(__name__)

PLACEHOLDER_RE = re.compile(r"\{\{\s*[^}]+\s*\}\}")
WHITESPACE_RE = re.compile(r"\s+")
WILDCARD = "(.*)"
WHITESPACE_TOKEN = r"\s+"
_FLAGS = re.IGNORECASE | re.DOTALL


def normalize_whitespace(text: str) -> str:
    """Collapse every whitespace run to one space and trim both ends."""
    return WHITESPACE_RE.sub(" ", text or "").strip()


def _literal_pattern(literal: str) -> str:
    parts = []
    for chunk in re.split(r"(\s+)", literal):
        if not chunk:
            continue
        parts.append(WHITESPACE_TOKEN if chunk.isspace() else re.escape(chunk))
    return "".join(parts)


def build_pattern(template: str, *, escape_literals: bool = True) -> str | None:
    """Build the anchored regex source for ``template``.

    Returns None when the template is malformed: with escaping on, a stray
    ``{{`` or ``}}`` outside a complete placeholder. With escaping off the
    literal text is spliced into the regex as-is.
    """
    normalized = normalize_whitespace(template)
    literals = PLACEHOLDER_RE.split(normalized)

    if not escape_literals:
        raw = PLACEHOLDER_RE.sub(WILDCARD, normalized)
        return WHITESPACE_RE.sub(lambda _m: WHITESPACE_TOKEN, raw)

    if any("{{" in part or "}}" in part for part in literals):
        return None
    return WILDCARD.join(_literal_pattern(part) for part in literals)


class MacroMatcher:
    """Compiled, reusable predicate for a single macro template."""

    __slots__ = ("template", "escape_literals", "pattern")

    def __init__(self, template: str, *, escape_literals: bool = True):
        self.template = template
        self.escape_literals = escape_literals
        self.pattern: re.Pattern[str] | None = None

        source = build_pattern(template, escape_literals=escape_literals)
        if source is None:
            logger.warning("Malformed macro template; matcher will never match", extra={"template": template[:200]})
            return
        try:
            self.pattern = re.compile(source, _FLAGS)
        except re.error as exc:
            logger.warning("Macro template is not a valid pattern: %s", exc, extra={"template": template[:200]})

    @property
    def is_valid(self) -> bool:
        return self.pattern is not None

    def matches(self, text: str) -> bool:
        if self.pattern is None:
            return False
        return self.pattern.fullmatch(normalize_whitespace(text)) is not None

    def __repr__(self) -> str:
        return f"<MacroMatcher valid={self.is_valid} template={self.template[:40]!r}>"


@lru_cache(maxsize=4096)
def compile_template(template: str, *, escape_literals: bool = True) -> MacroMatcher:
    """Compile ``template`` into a :class:`MacroMatcher` (memoised)."""
    return MacroMatcher(template, escape_literals=escape_literals)

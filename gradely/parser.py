"""
Parse and repair LLM output.

Models are asked for strict JSON but routinely wrap it in prose, code
fences or Python-style triple quotes. Extraction escalates through
increasingly permissive strategies, and every public parser degrades to
a truncated-text result instead of raising.
"""

import json
import logging
import re
from typing import Optional

from pydantic import ValidationError

from gradely.models import AssistantResult, AssistantSuggestion, ReviewIssue, ReviewResult

logger = logging.getLogger(__name__)

UNEXPECTED_FORMAT = "AI returned an unexpected format. Here is a brief summary:\n"

TRIPLE_QUOTED = re.compile(r'"""\s*([\s\S]*?)\s*"""')
FENCED_BLOCK = re.compile(r"```[a-zA-Z0-9_-]*\n([\s\S]*?)```")
OBJECT_BLOCK = re.compile(r"\{[\s\S]*\}")


def _loads_object(candidate: str) -> Optional[dict]:
    try:
        data = json.loads(candidate)
    except (json.JSONDecodeError, TypeError):
        return None
    return data if isinstance(data, dict) else None


def _as_json_string(match: re.Match) -> str:
    return json.dumps(match.group(1))


def repair_json_text(text: str) -> str:
    """Turn triple-quoted strings and fenced code blocks into JSON string literals."""
    repaired = TRIPLE_QUOTED.sub(_as_json_string, text)
    repaired = FENCED_BLOCK.sub(_as_json_string, repaired)
    return repaired


def extract_json_object(text: str) -> Optional[dict]:
    """
    Recover a JSON object from free-form model text.

    Strategies, first success wins:
    1. parse the whole text
    2. parse from the first '{' to the last '}'
    3. repair triple quotes / code fences, then parse the first {...} block
    """
    if not isinstance(text, str):
        return None

    data = _loads_object(text)
    if data is not None:
        return data

    start = text.find("{")
    end = text.rfind("}")
    if start >= 0 and end > start:
        data = _loads_object(text[start:end + 1])
        if data is not None:
            return data

    match = OBJECT_BLOCK.search(repair_json_text(text))
    if match:
        data = _loads_object(match.group(0))
        if data is not None:
            return data

    return None


def parse_review(text: str, max_issues: int = 12, preview: int = 500) -> ReviewResult:
    """
    Parse a {summary, issues} review from model output.

    At most `max_issues` raw items are decoded. Unparseable output yields
    a truncated preview as the summary and no issues.
    """
    text = text or ""
    data = extract_json_object(text)
    if data is None:
        logger.warning("Model output is not valid JSON - returning text preview")
        return ReviewResult(summary=UNEXPECTED_FORMAT + text[:preview], issues=[])

    summary = data.get("summary")
    if not isinstance(summary, str):
        summary = text[:preview]

    raw_issues = data.get("issues")
    if not isinstance(raw_issues, list):
        raw_issues = []

    issues = []
    for item in raw_issues[:max_issues]:
        if not isinstance(item, dict):
            continue
        try:
            issues.append(ReviewIssue.model_validate(item))
        except ValidationError as e:
            # Log but don't fail - skip invalid issues
            logger.warning(f"Skipping invalid issue: {e}")

    return ReviewResult(summary=summary, issues=issues)


def parse_assistant(text: str, preview: int = 600) -> AssistantResult:
    """Parse a {summary, suggestions} assistant answer from model output."""
    text = text or ""
    data = extract_json_object(text)
    if data is None:
        return AssistantResult(summary=text[:preview], suggestions=[], raw=text)

    summary = data.get("summary")
    if not isinstance(summary, str):
        summary = ""

    raw_suggestions = data.get("suggestions")
    if not isinstance(raw_suggestions, list):
        raw_suggestions = []

    suggestions = []
    for item in raw_suggestions:
        if not isinstance(item, dict):
            continue
        try:
            suggestion = AssistantSuggestion.model_validate(item)
        except ValidationError as e:
            logger.warning(f"Skipping invalid suggestion: {e}")
            continue
        if suggestion.apply.code.strip():
            suggestions.append(suggestion)

    return AssistantResult(summary=summary, suggestions=suggestions, raw=data)


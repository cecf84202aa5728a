"""
Data models for Gradely.
Using Pydantic for validation and type safety.

Model output is untrusted: the validators on ReviewIssue and
AssistantSuggestion are the rule table that turns missing or malformed
fields into documented defaults instead of validation errors.
"""

import math
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


Severity = Literal["info", "warning", "error"]
Language = Literal["typescript", "javascript", "python", "java", "c", "html"]
RunStatus = Literal["PENDING", "RUNNING", "PASSED", "FAILED"]
Role = Literal["STUDENT", "TEACHER", "ADMIN"]

SEVERITIES = ("info", "warning", "error")
SEVERITY_RANK = {"error": 0, "warning": 1, "info": 2}
LANGUAGES = ("typescript", "javascript", "python", "java", "c", "html")
TERMINAL_RUN_STATUSES = ("PASSED", "FAILED")


def _coerce_int(value: Any) -> Optional[int]:
    """Best-effort numeric conversion; None when the value is not a usable number."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return int(number)


def _positive_int(value: Any, default: int = 1) -> int:
    number = _coerce_int(value)
    if not number:
        return default
    return max(1, number)


def _non_empty_str(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value
    return None


def _new_id() -> str:
    return str(uuid.uuid4())


def _now() -> datetime:
    return datetime.now(timezone.utc)


# -- Model registry ---------------------------------------------------------

class ModelInfo(BaseModel):
    """Static metadata for a known-free model."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    context: int
    capability: str


class FallbackResult(BaseModel):
    """Outcome of mapping a requested model id onto a free one."""

    selected: str
    switched: bool
    reason: Optional[str] = None
    info: ModelInfo


class ProviderResult(BaseModel):
    """Single upstream call outcome: text on success, error otherwise."""

    ok: bool
    text: Optional[str] = None
    error: Optional[str] = None


class ChainResult(BaseModel):
    """Outcome of walking a fallback chain."""

    ok: bool
    text: str = ""
    error: str = ""
    notice: str = ""
    model: Optional[str] = None


# -- Review output ----------------------------------------------------------

class ReviewIssue(BaseModel):
    """Single line-anchored issue reported by the model."""

    line: int = Field(1, ge=1, description="1-based line number")
    message: str = Field("Potential issue", description="Human-readable explanation")
    severity: Severity = Field("info", description="Issue severity")
    suggestion: Optional[str] = Field(None, description="Optional fix")

    @field_validator("line", mode="before")
    @classmethod
    def _coerce_line(cls, value):
        return _positive_int(value, default=1)

    @field_validator("message", mode="before")
    @classmethod
    def _coerce_message(cls, value):
        if not value:
            return "Potential issue"
        return str(value)

    @field_validator("severity", mode="before")
    @classmethod
    def _coerce_severity(cls, value):
        return value if value in SEVERITIES else "info"

    @field_validator("suggestion", mode="before")
    @classmethod
    def _coerce_suggestion(cls, value):
        return _non_empty_str(value)


class ReviewResult(BaseModel):
    """Summary plus ordered issues."""

    summary: str
    issues: List[ReviewIssue] = Field(default_factory=list)


# -- Assistant output -------------------------------------------------------

class SuggestionRange(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    start_line: int = Field(1, alias="startLine")
    end_line: int = Field(1, alias="endLine")

    @model_validator(mode="before")
    @classmethod
    def _coerce_range(cls, data):
        if not isinstance(data, dict):
            return {}
        start = _positive_int(data.get("startLine", data.get("start_line")), default=1)
        end = _positive_int(data.get("endLine", data.get("end_line")), default=start)
        return {"startLine": start, "endLine": end}


class SuggestionApply(BaseModel):
    type: Literal["replace", "insert", "patch"] = "replace"
    range: SuggestionRange = Field(default_factory=SuggestionRange)
    code: str = ""

    @field_validator("type", mode="before")
    @classmethod
    def _coerce_type(cls, value):
        return value if value in ("replace", "insert", "patch") else "replace"

    @field_validator("range", mode="before")
    @classmethod
    def _coerce_range(cls, value):
        return value if isinstance(value, dict) else {}

    @field_validator("code", mode="before")
    @classmethod
    def _coerce_code(cls, value):
        if value is None:
            return ""
        return value if isinstance(value, str) else str(value)


class AssistantSuggestion(BaseModel):
    """Concrete edit proposed by the in-editor assistant."""

    title: str = "Suggestion"
    rationale: Optional[str] = None
    apply: SuggestionApply = Field(default_factory=SuggestionApply)

    @field_validator("title", mode="before")
    @classmethod
    def _coerce_title(cls, value):
        if not value:
            return "Suggestion"
        return str(value)

    @field_validator("rationale", mode="before")
    @classmethod
    def _coerce_rationale(cls, value):
        return _non_empty_str(value)

    @field_validator("apply", mode="before")
    @classmethod
    def _coerce_apply(cls, value):
        return value if isinstance(value, dict) else {}


class AssistantResult(BaseModel):
    summary: str
    suggestions: List[AssistantSuggestion] = Field(default_factory=list)
    raw: Any = None


# -- Persisted records ------------------------------------------------------

class Assignment(BaseModel):
    id: str = Field(default_factory=_new_id)
    title: str
    description: Optional[str] = None
    language: Language
    created_at: datetime = Field(default_factory=_now)


class Submission(BaseModel):
    id: str = Field(default_factory=_new_id)
    assignment_id: str
    user_email: Optional[str] = None
    language: Language
    code: str
    created_at: datetime = Field(default_factory=_now)
    review: ReviewResult


class Run(BaseModel):
    """One grading run for a submission; logs accumulate while it executes."""

    id: str = Field(default_factory=_new_id)
    submission_id: str
    status: RunStatus = "PENDING"
    logs: str = ""
    metrics: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=_now)


class SessionConfig(BaseModel):
    """Per-session settings, keyed by the session cookie."""

    hf_key: Optional[str] = None
    role: Role = "STUDENT"

"""
Shared fixtures.

Upstream HTTP is never hit: `scripted_post` replaces requests.post with a
queue of canned responses and records every call.
"""

import json

import pytest

MODEL_ENV_VARS = [
    "REVIEW_PRIMARY_MODEL", "REVIEW_SECONDARY_MODEL", "REVIEW_TERTIARY_MODEL",
    "REVIEW_QUATERNARY_MODEL", "REVIEW_FALLBACK_MODEL",
    "ASSISTANT_PRIMARY_MODEL", "ASSISTANT_SECONDARY_MODEL", "ASSISTANT_TERTIARY_MODEL",
    "ASSISTANT_FALLBACK_MODEL",
    "CHAT_PRIMARY_MODEL", "CHAT_SECONDARY_MODEL", "CHAT_FALLBACK_MODEL",
    "SUBMISSION_PRIMARY_MODEL", "SUBMISSION_FALLBACK_MODEL", "HF_SELFTEST_MODELS",
    "GRADELY_UPSTREAM_TIMEOUT", "GRADELY_LOG_LEVEL",
]


class FakeResponse:
    """Minimal stand-in for requests.Response."""

    def __init__(self, status_code=200, body=None, text=None):
        self.status_code = status_code
        self._body = body
        self.text = text if text is not None else json.dumps(body)

    @property
    def ok(self):
        return 200 <= self.status_code < 400

    def json(self):
        if self._body is not None:
            return self._body
        return json.loads(self.text)


class ScriptedPost:
    def __init__(self):
        self.calls = []
        self.responses = []

    def add(self, status_code=200, body=None, text=None):
        self.responses.append(FakeResponse(status_code, body=body, text=text))
        return self

    def fail(self, exc):
        self.responses.append(exc)
        return self

    def chat_reply(self, content):
        """Queue a Groq chat-completions success."""
        return self.add(200, body={"choices": [{"message": {"content": content}}]})

    def __call__(self, url, json=None, headers=None, timeout=None):
        self.calls.append({"url": url, "json": json, "headers": headers, "timeout": timeout})
        if not self.responses:
            raise AssertionError(f"Unexpected upstream call to {url}")
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Known credentials, default model chains."""
    monkeypatch.setenv("GROQ_API_KEY", "gsk-test-key")
    monkeypatch.setenv("HUGGINGFACE_API_KEY", "hf-test-key")
    for name in MODEL_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def scripted_post(monkeypatch):
    script = ScriptedPost()
    monkeypatch.setattr("gradely.providers.requests.post", script)
    return script

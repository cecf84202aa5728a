"""
Tests for environment-driven settings.

Run with: pytest tests/
"""

import pytest

from gradely.config import load_settings


def test_defaults():
    settings = load_settings()
    assert settings.upstream_timeout == 60.0
    assert settings.log_level == "INFO"
    assert settings.review_models[:2] == ["llama-3.1-8b-instant", "mixtral-8x7b-32768"]
    assert settings.submission_models == ["bigcode/starcoder2-7b", "openai-community/gpt2"]


def test_timeout_from_env(monkeypatch):
    monkeypatch.setenv("GRADELY_UPSTREAM_TIMEOUT", "12.5")
    assert load_settings().upstream_timeout == 12.5


@pytest.mark.parametrize("raw", ["0", "-3", "nan", "inf", "soon", ""])
def test_unusable_timeout_falls_back(monkeypatch, raw):
    """requests rejects non-positive timeouts, so they never reach it."""
    monkeypatch.setenv("GRADELY_UPSTREAM_TIMEOUT", raw)
    assert load_settings().upstream_timeout == 60.0


def test_log_level_normalized(monkeypatch):
    monkeypatch.setenv("GRADELY_LOG_LEVEL", " warning ")
    assert load_settings().log_level == "WARNING"


def test_unknown_log_level_falls_back(monkeypatch):
    monkeypatch.setenv("GRADELY_LOG_LEVEL", "VERBOSE")
    assert load_settings().log_level == "INFO"


def test_selftest_models_list(monkeypatch):
    monkeypatch.setenv("HF_SELFTEST_MODELS", "a/one, b/two,,")
    assert load_settings().hf_selftest_models == ["a/one", "b/two"]

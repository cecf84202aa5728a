"""
Tests for the multi-model fallback chain.

Run with: pytest tests/
"""

from gradely.fallback import run_fallback_chain, with_notice
from gradely.models import ProviderResult


class FakeCaller:
    """Answers per model id; records the calls it received."""

    def __init__(self, outcomes):
        self.outcomes = outcomes
        self.calls = []

    def __call__(self, model, prompt, max_tokens, api_key):
        self.calls.append((model, max_tokens, api_key))
        return self.outcomes[len(self.calls) - 1]


def ok(text):
    return ProviderResult(ok=True, text=text)


def fail(error):
    return ProviderResult(ok=False, error=error)


def test_stops_at_first_success():
    """A, B fail and C succeeds: C's text, nothing tried after C."""
    caller = FakeCaller([fail("a down"), fail("b down"), ok("from C"), ok("from D")])
    models = ["llama-3.1-8b-instant", "mixtral-8x7b-32768", "llama-3.1-8b-instant", "mixtral-8x7b-32768"]

    result = run_fallback_chain(models, "prompt", caller, max_tokens=100, api_key="k")
    assert result.ok
    assert result.text == "from C"
    assert result.model == "llama-3.1-8b-instant"
    assert len(caller.calls) == 3
    assert caller.calls[0] == ("llama-3.1-8b-instant", 100, "k")


def test_exhaustion_names_last_model():
    caller = FakeCaller([fail("first"), fail("second")])

    result = run_fallback_chain(["llama-3.1-8b-instant", "mixtral-8x7b-32768"], "p", caller)
    assert result.ok is False
    assert result.error == "mixtral-8x7b-32768: second"


def test_models_resolved_through_registry():
    caller = FakeCaller([ok("x")])
    run_fallback_chain(["llama3-8b-8192"], "p", caller)
    assert caller.calls[0][0] == "llama-3.1-8b-instant"


def test_only_first_switch_is_reported():
    """The notice cites the first substituted model only."""
    caller = FakeCaller([fail("down"), ok("answer")])

    result = run_fallback_chain(["llama3-8b-8192", "llama-3.1-70b-versatile"], "p", caller)
    assert result.ok
    assert result.notice.startswith("[Using free model] Llama 3.1 8B Instant")
    assert "llama3-8b-8192" in result.notice
    assert "llama-3.1-70b-versatile" not in result.notice


def test_no_notice_without_switch():
    result = run_fallback_chain(["mixtral-8x7b-32768"], "p", FakeCaller([ok("a")]))
    assert result.notice == ""


def test_notice_kept_on_failure():
    result = run_fallback_chain(["gpt-4"], "p", FakeCaller([fail("down")]))
    assert result.ok is False
    assert "gpt-4" in result.notice


def test_selector_none_uses_ids_verbatim():
    caller = FakeCaller([ok("hf")])
    result = run_fallback_chain(["bigcode/starcoder2-7b"], "p", caller, selector=None)
    assert caller.calls[0][0] == "bigcode/starcoder2-7b"
    assert result.notice == ""


def test_empty_chain():
    result = run_fallback_chain([], "p", FakeCaller([]))
    assert result.ok is False
    assert result.error


def test_with_notice():
    assert with_notice("", "body") == "body"
    assert with_notice("[Using free model] X.", "body") == "[Using free model] X.\n\nbody"

"""
Core reviewer module.

Orchestrates prompt building, the model fallback chain, response parsing
and issue filtering for the review, assistant and submission features.
Upstream and parse failures degrade into readable results; only
request-level problems raise GradelyError subclasses.
"""

import logging
import time
from typing import List, Optional

from gradely.config import load_settings
from gradely.errors import InvalidInputError, UpstreamError
from gradely.fallback import Caller, run_fallback_chain, with_notice
from gradely.models import LANGUAGES, AssistantResult, Assignment, ChainResult, ReviewResult, Submission
from gradely.parser import parse_assistant, parse_review
from gradely.prompts import (
    SELFTEST_PROMPT,
    build_assistant_prompt,
    build_review_prompt,
    build_submission_prompt,
)
from gradely.providers import call_groq_model, call_hf_model
from gradely.rules import filter_issues, rank_issues
from gradely.store import Store

logger = logging.getLogger(__name__)
logging.basicConfig(level=load_settings().log_level, format='%(levelname)s: %(message)s')

REVIEW_MAX_TOKENS = 800
ASSISTANT_MAX_TOKENS = 1024
SUBMISSION_MAX_NEW_TOKENS = 800

# Raw issues decoded before filtering, and the cap for submissions
REVIEW_RAW_ISSUE_LIMIT = 12
SUBMISSION_ISSUE_LIMIT = 8


def validate_language(language: str) -> str:
    language = (language or "").strip()
    if language not in LANGUAGES:
        raise InvalidInputError("Invalid language")
    return language


def review_code(
    code: str,
    language: str,
    models: Optional[List[str]] = None,
    api_key: Optional[str] = None,
    caller: Caller = call_groq_model,
) -> ReviewResult:
    """
    Review a snippet of code.

    Workflow:
    1. Build the prompt (with language-specific hints)
    2. Walk the model chain until one answers
    3. Parse/repair the answer, filter, rank and cap the issues

    Never raises for upstream or parse failures.
    """
    if not isinstance(code, str) or not code.strip():
        return ReviewResult(summary="No code provided.", issues=[])

    start_time = time.time()
    language = language or ""
    prompt = build_review_prompt(code, language)
    chain = run_fallback_chain(
        models or load_settings().review_models,
        prompt,
        caller,
        max_tokens=REVIEW_MAX_TOKENS,
        api_key=api_key,
    )

    if not chain.ok:
        logger.warning(f"All review models failed: {chain.error}")
        return ReviewResult(summary=f"All models failed: {chain.error}", issues=[])

    parsed = parse_review(chain.text, max_issues=REVIEW_RAW_ISSUE_LIMIT, preview=500)
    issues = filter_issues(parsed.issues, code, language)

    logger.info(
        f"Review completed with {chain.model}: {len(issues)} issues "
        f"({len(parsed.issues) - len(issues)} filtered) in {round(time.time() - start_time, 2)}s"
    )
    return ReviewResult(summary=with_notice(chain.notice, parsed.summary), issues=issues)


def assist(
    task: str,
    code: str = "",
    language: str = "",
    models: Optional[List[str]] = None,
    api_key: Optional[str] = None,
    caller: Caller = call_groq_model,
) -> AssistantResult:
    """Answer an in-editor request with a summary and concrete code suggestions."""
    if not isinstance(task, str) or not task:
        raise InvalidInputError("Missing prompt")

    prompt = build_assistant_prompt(task, code or "", language or "")
    chain = run_fallback_chain(
        models or load_settings().assistant_models,
        prompt,
        caller,
        max_tokens=ASSISTANT_MAX_TOKENS,
        api_key=api_key,
    )
    if not chain.ok:
        raise UpstreamError("Upstream error", info=chain.error)

    result = parse_assistant(chain.text)
    result.summary = with_notice(chain.notice, result.summary)
    return result


def run_submission_chain(
    code: str,
    language: str,
    models: Optional[List[str]] = None,
    api_key: Optional[str] = None,
    caller: Caller = call_hf_model,
) -> ChainResult:
    """Ask the Hugging Face models to grade code. Model ids are used verbatim."""
    prompt = build_submission_prompt(code, language)
    return run_fallback_chain(
        models or load_settings().submission_models,
        prompt,
        caller,
        max_tokens=SUBMISSION_MAX_NEW_TOKENS,
        api_key=api_key,
        selector=None,
    )


def review_submission(
    code: str,
    language: str,
    models: Optional[List[str]] = None,
    api_key: Optional[str] = None,
    caller: Caller = call_hf_model,
) -> ReviewResult:
    """
    Grade an assignment submission with Hugging Face models.

    The free-model registry only covers Groq, so no substitution happens
    here. Issues are ranked and capped at 8 but not heuristically filtered.
    """
    chain = run_submission_chain(code, language, models=models, api_key=api_key, caller=caller)
    if not chain.ok:
        logger.warning(f"All submission models failed: {chain.error}")
        return ReviewResult(summary=f"All models failed: {chain.error}", issues=[])

    return parse_submission_review(chain.text)


def parse_submission_review(text: str) -> ReviewResult:
    """Parse a graded submission; issues are ranked and capped but not filtered."""
    review = parse_review(text, max_issues=SUBMISSION_ISSUE_LIMIT, preview=300)
    review.issues = rank_issues(review.issues, limit=SUBMISSION_ISSUE_LIMIT)
    return review


def create_assignment(store: Store, title: str, language: str, description: Optional[str] = None) -> Assignment:
    title = (title or "").strip()
    if not title:
        raise InvalidInputError("Missing title")
    language = validate_language(language)

    assignment = Assignment(title=title, description=description or None, language=language)
    logger.info(f"Assignment created: {assignment.id}")
    return store.create_assignment(assignment)


def submit_assignment(
    store: Store,
    assignment_id: str,
    code: str,
    language: str,
    user_email: Optional[str] = None,
    caller: Caller = call_hf_model,
) -> Submission:
    """Review a submission and persist it with its review."""
    store.get_assignment(assignment_id)
    if not isinstance(code, str) or not code.strip():
        raise InvalidInputError("Missing code")
    language = validate_language(language)

    review = review_submission(code, language, caller=caller)
    submission = Submission(
        assignment_id=assignment_id,
        user_email=user_email or None,
        language=language,
        code=code,
        review=review,
    )
    logger.info(f"Submission {submission.id} stored with {len(review.issues)} issues")
    return store.add_submission(submission)


def selftest(models: List[str], caller: Caller, max_tokens: int = 64) -> dict:
    """Call every model directly with a tiny prompt and report each attempt."""
    attempts = []
    for model in models:
        # gpt2 rambles; keep its token limit small
        limit = 16 if "gpt2" in model else max_tokens
        result = caller(model, SELFTEST_PROMPT, limit, None)
        if result.ok:
            attempts.append({"model": model, "ok": True, "text": (result.text or "")[:240]})
        else:
            attempts.append({"model": model, "ok": False, "error": result.error})

    success_model = next((a["model"] for a in attempts if a["ok"]), None)
    return {"attempts": attempts, "successModel": success_model}

"""
Tests for the grading queue and worker.

Run with: pytest tests/
"""

import json

from gradely.jobs import GRADE_JOB, JobQueue, grade_run, make_job_handler
from gradely.models import ProviderResult, ReviewResult, Submission
from gradely.store import Store


def stored_submission(store):
    submission = Submission(
        assignment_id="a1",
        language="python",
        code="def mean(xs):\n    return sum(xs) / len(xs)\n",
        review=ReviewResult(summary="initial"),
    )
    return store.add_submission(submission)


def answering(text):
    def caller(model, prompt, max_tokens, api_key):
        return ProviderResult(ok=True, text=text)
    return caller


def failing(model, prompt, max_tokens, api_key):
    return ProviderResult(ok=False, error="unavailable")


def test_grade_run_passes():
    store = Store()
    submission = stored_submission(store)
    run = store.create_run(submission.id)
    text = json.dumps({
        "summary": "Crashes on empty input.",
        "issues": [
            {"line": 2, "message": "Division by zero when xs is empty", "severity": "error"},
            {"line": 1, "message": "Missing docstring", "severity": "info"},
        ],
    })

    grade_run(store, run.id, submission.id, caller=answering(text))

    result = store.find_run(run.id)
    assert result.status == "PASSED"
    assert "[ERROR] line 2: Division by zero when xs is empty" in result.logs
    assert "Summary: Crashes on empty input." in result.logs
    assert result.metrics == {"total_issues": 2, "info": 1, "warning": 0, "error": 1}


def test_grade_run_fails_when_models_exhausted():
    store = Store()
    submission = stored_submission(store)
    run = store.create_run(submission.id)

    grade_run(store, run.id, submission.id, caller=failing)

    result = store.find_run(run.id)
    assert result.status == "FAILED"
    assert "All models failed: openai-community/gpt2: unavailable" in result.logs


def test_grade_run_missing_submission():
    store = Store()
    run = store.create_run("ghost")

    grade_run(store, run.id, "ghost", caller=failing)

    result = store.find_run(run.id)
    assert result.status == "FAILED"
    assert "Submission not found" in result.logs


def test_queue_is_fifo():
    queue = JobQueue()
    queue.add(GRADE_JOB, {"n": 1})
    queue.add(GRADE_JOB, {"n": 2})

    seen = []
    processed = queue.drain(lambda job: seen.append(job.data["n"]))
    assert processed == 2
    assert seen == [1, 2]
    assert queue.pending() == []


def test_drain_survives_handler_errors():
    queue = JobQueue()
    queue.add("boom", {})
    queue.add("ok", {})

    seen = []

    def handler(job):
        if job.name == "boom":
            raise RuntimeError("handler crashed")
        seen.append(job.name)

    assert queue.drain(handler) == 2
    assert seen == ["ok"]


def test_job_handler_grades_runs():
    store = Store()
    submission = stored_submission(store)
    run = store.create_run(submission.id)
    queue = JobQueue()
    queue.add(GRADE_JOB, {"run_id": run.id, "submission_id": submission.id})
    queue.add("unknown", {})

    queue.drain(make_job_handler(store, caller=answering('{"summary": "Fine.", "issues": []}')))

    assert store.find_run(run.id).status == "PASSED"


def test_grade_run_crash_marks_run_failed():
    """An unexpected error mid-run still ends the run, so its log stream closes."""
    store = Store()
    submission = stored_submission(store)
    run = store.create_run(submission.id)
    queue = JobQueue()
    queue.add(GRADE_JOB, {"run_id": run.id, "submission_id": submission.id})

    def exploding(model, prompt, max_tokens, api_key):
        raise ValueError("boom")

    queue.drain(make_job_handler(store, caller=exploding))

    result = store.find_run(run.id)
    assert result.status == "FAILED"
    assert "Grading failed: boom" in result.logs


def test_grade_run_ranks_issues():
    store = Store()
    submission = stored_submission(store)
    run = store.create_run(submission.id)
    text = json.dumps({
        "summary": "s",
        "issues": [
            {"line": 5, "message": "late info", "severity": "info"},
            {"line": 9, "message": "real bug", "severity": "error"},
        ],
    })

    grade_run(store, run.id, submission.id, caller=answering(text))

    logs = store.find_run(run.id).logs
    assert logs.index("[ERROR] line 9") < logs.index("[INFO] line 5")

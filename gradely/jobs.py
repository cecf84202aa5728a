"""
Background grading queue and worker.

The queue only carries opaque job payloads. `grade_run` is the worker
side: it moves a run through RUNNING to PASSED/FAILED and appends log
lines that the log stream endpoint polls.
"""

import logging
import threading
import uuid
from collections import deque
from typing import Any, Callable, Dict, List

from pydantic import BaseModel, Field

from gradely.errors import NotFoundError
from gradely.fallback import Caller
from gradely.providers import call_hf_model
from gradely.reviewer import parse_submission_review, run_submission_chain
from gradely.store import Store

logger = logging.getLogger(__name__)

GRADE_JOB = "grade"


class Job(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    name: str
    data: Dict[str, Any] = Field(default_factory=dict)


class JobQueue:
    """In-process FIFO of jobs; workers pull with `drain`."""

    def __init__(self):
        self._lock = threading.Lock()
        self._jobs = deque()

    def add(self, name: str, data: Dict[str, Any]) -> Job:
        job = Job(name=name, data=data)
        with self._lock:
            self._jobs.append(job)
        logger.info(f"Queued {name} job {job.id}")
        return job

    def pending(self) -> List[Job]:
        with self._lock:
            return list(self._jobs)

    def drain(self, handler: Callable[[Job], None]) -> int:
        """Hand every queued job to `handler`; returns how many were processed."""
        processed = 0
        while True:
            with self._lock:
                if not self._jobs:
                    return processed
                job = self._jobs.popleft()
            try:
                handler(job)
            except Exception as e:
                logger.error(f"Job {job.id} ({job.name}) failed: {e}")
            processed += 1


def grade_run(store: Store, run_id: str, submission_id: str, caller: Caller = call_hf_model) -> None:
    """Re-review a stored submission, recording progress on the run."""
    store.update_run(run_id, status="RUNNING", append_log=f"Grading submission {submission_id}")
    try:
        _grade(store, run_id, submission_id, caller)
    except Exception as e:
        # every run must end PASSED or FAILED
        logger.error(f"Grading run {run_id} crashed: {e}")
        store.update_run(run_id, status="FAILED", append_log=f"Grading failed: {e}")


def _grade(store: Store, run_id: str, submission_id: str, caller: Caller) -> None:
    try:
        submission = store.get_submission(submission_id)
    except NotFoundError:
        store.update_run(run_id, status="FAILED", append_log="Submission not found")
        return

    store.update_run(run_id, append_log=f"Reviewing {submission.language} code ({len(submission.code.splitlines())} lines)")
    chain = run_submission_chain(submission.code, submission.language, caller=caller)
    if not chain.ok:
        store.update_run(run_id, status="FAILED", append_log=f"All models failed: {chain.error}")
        return

    store.update_run(run_id, append_log=f"Model {chain.model} answered")
    review = parse_submission_review(chain.text)

    for issue in review.issues:
        store.update_run(run_id, append_log=f"[{issue.severity.upper()}] line {issue.line}: {issue.message}")

    counts = {"info": 0, "warning": 0, "error": 0}
    for issue in review.issues:
        counts[issue.severity] += 1
    store.update_run(
        run_id,
        status="PASSED",
        append_log=f"Summary: {review.summary}",
        metrics={"total_issues": len(review.issues), **counts},
    )


def make_job_handler(store: Store, caller: Caller = call_hf_model) -> Callable[[Job], None]:
    def handle(job: Job) -> None:
        if job.name != GRADE_JOB:
            logger.warning(f"Ignoring unknown job type: {job.name}")
            return
        grade_run(store, job.data["run_id"], job.data["submission_id"], caller=caller)

    return handle

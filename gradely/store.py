"""
In-process persistence for assignments, submissions and runs.

Records are create-only apart from run progress. State lives for the
lifetime of the process; swap in a database-backed Store with the same
methods for anything beyond a single instance.
"""

import threading
from typing import Dict, List, Optional

from gradely.errors import NotFoundError
from gradely.models import Assignment, Run, RunStatus, Submission


class Store:
    """Thread-safe in-memory record store."""

    def __init__(self):
        self._lock = threading.Lock()
        self._assignments: Dict[str, Assignment] = {}
        self._submissions: Dict[str, Submission] = {}
        self._runs: Dict[str, Run] = {}

    # -- assignments --------------------------------------------------------

    def create_assignment(self, assignment: Assignment) -> Assignment:
        with self._lock:
            self._assignments[assignment.id] = assignment
        return assignment

    def list_assignments(self) -> List[Assignment]:
        """Newest first."""
        with self._lock:
            return list(reversed(list(self._assignments.values())))

    def get_assignment(self, assignment_id: str) -> Assignment:
        with self._lock:
            assignment = self._assignments.get(assignment_id)
        if assignment is None:
            raise NotFoundError(f"Assignment not found: {assignment_id}")
        return assignment

    # -- submissions --------------------------------------------------------

    def add_submission(self, submission: Submission) -> Submission:
        with self._lock:
            self._submissions[submission.id] = submission
        return submission

    def list_submissions(self, assignment_id: str) -> List[Submission]:
        """Submissions for one assignment, newest first."""
        with self._lock:
            items = [s for s in self._submissions.values() if s.assignment_id == assignment_id]
        return list(reversed(items))

    def get_submission(self, submission_id: str) -> Submission:
        with self._lock:
            submission = self._submissions.get(submission_id)
        if submission is None:
            raise NotFoundError(f"Submission not found: {submission_id}")
        return submission

    # -- runs ---------------------------------------------------------------

    def create_run(self, submission_id: str) -> Run:
        run = Run(submission_id=submission_id)
        with self._lock:
            self._runs[run.id] = run
        return run.model_copy(deep=True)

    def find_run(self, run_id: str) -> Optional[Run]:
        """Snapshot of a run, or None if it doesn't exist."""
        with self._lock:
            run = self._runs.get(run_id)
            return run.model_copy(deep=True) if run else None

    def update_run(
        self,
        run_id: str,
        status: Optional[RunStatus] = None,
        append_log: Optional[str] = None,
        metrics: Optional[dict] = None,
    ) -> Run:
        with self._lock:
            run = self._runs.get(run_id)
            if run is None:
                raise NotFoundError(f"Run not found: {run_id}")
            if status is not None:
                run.status = status
            if append_log:
                run.logs += append_log if append_log.endswith("\n") else append_log + "\n"
            if metrics:
                run.metrics.update(metrics)
            return run.model_copy(deep=True)

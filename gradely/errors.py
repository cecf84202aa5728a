"""
Exceptions raised by Gradely services.

Upstream and parse failures are returned as values, not raised.
These cover the request-level failures the API maps to HTTP statuses.
"""


class GradelyError(Exception):
    """Base exception for Gradely errors."""
    pass


class InvalidInputError(GradelyError):
    """Request is missing a field or carries an unsupported value."""
    pass


class ForbiddenError(GradelyError):
    """Caller's role is not allowed to perform the action."""
    pass


class NotFoundError(GradelyError):
    """Requested assignment, submission or run does not exist."""
    pass


class UpstreamError(GradelyError):
    """Every candidate model failed; `info` carries the last upstream error."""

    def __init__(self, message: str, info: str = ""):
        super().__init__(message)
        self.info = info

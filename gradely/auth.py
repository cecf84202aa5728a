"""
Demo credential check and role gate.

Only the two mocked accounts below can sign in. Replace `authenticate`
with real verification before exposing the service.
"""

from typing import Iterable, Optional

from gradely.errors import ForbiddenError
from gradely.models import Role, SessionConfig


DEMO_ACCOUNTS = {
    ("TEACHER", "teacher@example.com"): "teacherpass",
    ("STUDENT", "student@example.com"): "studentpass",
}

STAFF_ROLES = ("TEACHER", "ADMIN")


def authenticate(email: str, password: str, role: str = "student") -> Optional[Role]:
    """Return the granted role for valid demo credentials, else None."""
    email = (email or "").strip().lower()
    role = (role or "student").strip().upper() or "STUDENT"

    expected = DEMO_ACCOUNTS.get((role, email))
    if expected is None or password != expected:
        return None
    return role


def require_role(config: SessionConfig, allowed: Iterable[str] = STAFF_ROLES) -> None:
    if config.role not in allowed:
        raise ForbiddenError("Forbidden")

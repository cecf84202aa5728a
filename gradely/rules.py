"""
Heuristic post-filter for model-reported issues.

Small models hallucinate boilerplate findings. These rules drop the
common false positives, then deduplicate, rank and cap what is left.
Rule order matters; keep the registry order when adding rules.
"""

import re
from typing import List, Optional

from gradely.models import SEVERITY_RANK, ReviewIssue


MAX_REVIEW_ISSUES = 5

NAMING_COMPLAINT = re.compile(r"naming convention|rename the function")
TRY_EXCEPT_BOILERPLATE = re.compile(r"try-?except|exceptions may occur")


def first_function_name(code: str) -> Optional[str]:
    """Name of the first `def` in Python source, if any."""
    match = re.search(r"\bdef\s+([A-Za-z_]\w*)\s*\(", code or "")
    return match.group(1) if match else None


def is_snake_case(name: Optional[str]) -> bool:
    return bool(name) and re.fullmatch(r"[a-z_][a-z0-9_]*", name) is not None


def check_division_by_zero(issue: ReviewIssue, code: str, language: str) -> bool:
    """Division by zero can't happen without a division operator."""
    return "/" not in code and "division by zero" in issue.message.lower()


def check_python_overflow(issue: ReviewIssue, code: str, language: str) -> bool:
    """Python integers are arbitrary-precision."""
    return language == "python" and "overflow" in issue.message.lower()


def check_python_naming(issue: ReviewIssue, code: str, language: str) -> bool:
    """Naming complaints about a function that is already snake_case."""
    if language != "python":
        return False
    if not is_snake_case(first_function_name(code)):
        return False
    return NAMING_COMPLAINT.search(issue.message.lower()) is not None


def check_try_except_boilerplate(issue: ReviewIssue, code: str, language: str) -> bool:
    # only actionable at warning/error severity
    if issue.severity != "info":
        return False
    return TRY_EXCEPT_BOILERPLATE.search(issue.message.lower()) is not None


# Registry of suppression rules, applied in order
RULE_REGISTRY = [
    check_division_by_zero,
    check_python_overflow,
    check_python_naming,
    check_try_except_boilerplate,
]


def is_suppressed(issue: ReviewIssue, code: str, language: str) -> bool:
    return any(rule(issue, code, language) for rule in RULE_REGISTRY)


def deduplicate_issues(issues: List[ReviewIssue]) -> List[ReviewIssue]:
    """Drop repeated (line, message) pairs, keeping the first occurrence."""
    seen = set()
    unique = []
    for issue in issues:
        key = (issue.line, issue.message)
        if key in seen:
            continue
        seen.add(key)
        unique.append(issue)
    return unique


def rank_issues(issues: List[ReviewIssue], limit: int = MAX_REVIEW_ISSUES) -> List[ReviewIssue]:
    """Errors first, then warnings, then info; ascending line within a severity."""
    ranked = sorted(issues, key=lambda issue: (SEVERITY_RANK[issue.severity], issue.line))
    return ranked[:limit]


def filter_issues(
    issues: List[ReviewIssue],
    code: str,
    language: str,
    limit: int = MAX_REVIEW_ISSUES,
) -> List[ReviewIssue]:
    """Run all suppression rules, then deduplicate, rank and cap."""
    code = code or ""
    language = (language or "").lower()

    kept = [issue for issue in issues if not is_suppressed(issue, code, language)]
    kept = deduplicate_issues(kept)
    return rank_issues(kept, limit=limit)

"""
Field validation for submitted user records.

``validate`` is pure: it never touches persistence, and reports every
problem it finds in the fixed field order name, email, age.
"""

import re
from typing import Any, Dict, List, Mapping

from .models import IssueCategory, ValidationIssue, USER_FIELDS

# local@domain.tld, printable ASCII only, no whitespace
EMAIL_PATTERN = re.compile(r"^[\x21-\x3f\x41-\x7e]+@[\x21-\x3f\x41-\x7e]+\.[\x21-\x3f\x41-\x7e]+$")

MIN_AGE = 1
MAX_AGE = 120

_ABSENT = object()


def _check_name(value: Any) -> List[ValidationIssue]:
    if value is None or (isinstance(value, str) and not value.strip()):
        return [ValidationIssue("name", "Name is required", IssueCategory.MISSING)]
    if not isinstance(value, str):
        return [ValidationIssue("name", "Name must be a string", IssueCategory.INVALID)]
    return []


def _check_email(value: Any) -> List[ValidationIssue]:
    if value is None or value == "":
        return [ValidationIssue("email", "Email is required", IssueCategory.MISSING)]
    if not isinstance(value, str) or not EMAIL_PATTERN.match(value.strip()):
        return [ValidationIssue("email", "Please enter a valid email", IssueCategory.INVALID)]
    return []


def _check_age(value: Any) -> List[ValidationIssue]:
    if value is None:
        return [ValidationIssue("age", "Age is required", IssueCategory.MISSING)]
    # bool is an int subclass
    if isinstance(value, bool) or not isinstance(value, int) or not MIN_AGE <= value <= MAX_AGE:
        return [ValidationIssue("age", f"Age must be between {MIN_AGE} and {MAX_AGE}", IssueCategory.INVALID)]
    return []


_CHECKS = {
    "name": _check_name,
    "email": _check_email,
    "age": _check_age,
}


def validate(data: Any, partial: bool = False) -> List[ValidationIssue]:
    """
    Validate a submitted user record.

    With ``partial`` set only the fields present in ``data`` are checked,
    which is how updates are validated. An explicit ``None`` still counts
    as present and is reported as missing.
    """
    if not isinstance(data, Mapping):
        return [ValidationIssue("body", "User data must be an object", IssueCategory.INVALID)]

    issues: List[ValidationIssue] = []
    for field_name in USER_FIELDS:
        value = data.get(field_name, _ABSENT)
        if value is _ABSENT:
            if partial:
                continue
            value = None
        issues.extend(_CHECKS[field_name](value))
    return issues


def normalize_email(email: str) -> str:
    return email.strip().lower()


def normalize(data: Mapping[str, Any]) -> Dict[str, Any]:
    """Return the known user fields of a validated record in stored form."""
    normalized: Dict[str, Any] = {}
    for field_name in USER_FIELDS:
        if field_name not in data:
            continue
        value = data[field_name]
        if field_name == "name":
            value = value.strip()
        elif field_name == "email":
            value = normalize_email(value)
        normalized[field_name] = value
    return normalized

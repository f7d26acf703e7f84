"""Completeness rules for admin-curated resource metadata.

An approval publishes the resource, so every descriptive field must be
present: incomplete approvals are rejected rather than published with
partial metadata.
"""

import re
from typing import Dict, Mapping, Optional

from .taxonomy import (
    ExamType,
    PYQ_FIELDS,
    REQUIRED_CURATED_FIELDS,
    ResourceKind,
    SemesterType,
    SENTINEL_SUBJECT,
)

# "2023-2024"
ACADEMIC_YEAR_PATTERN = re.compile(r"^(\d{4})-(\d{4})$")


def _blank(value: Optional[str]) -> bool:
    return value is None or not str(value).strip()


def validate_academic_year(value: str) -> Optional[str]:
    """Return a reason string if ``value`` is not a consecutive year range.

    Example:
        >>> validate_academic_year("2023-2024") is None
        True
        >>> validate_academic_year("2023-2025")
        'must span consecutive years'
    """
    match = ACADEMIC_YEAR_PATTERN.match(value.strip())
    if not match:
        return "must look like 2023-2024"

    start, end = match.group(1), match.group(2)
    end_year = int(end)
    if end_year != int(start) + 1:
        return "must span consecutive years"
    return None


def find_curation_problems(kind: ResourceKind, fields: Mapping[str, Optional[str]]) -> Dict[str, str]:
    """Collect every missing or invalid curated field.

    Args:
        kind: Kind of the resource being curated
        fields: Field name → admin-supplied value

    Returns:
        Field name → reason. Empty when the metadata is publishable.
    """
    problems: Dict[str, str] = {}

    for name in REQUIRED_CURATED_FIELDS:
        if _blank(fields.get(name)):
            problems[name] = "required"

    subject = fields.get("subject")
    if not _blank(subject) and subject.strip().lower() == SENTINEL_SUBJECT.lower():
        problems["subject"] = "must be replaced with the real subject"

    if ResourceKind(kind) != ResourceKind.PYQ:
        return problems

    for name in PYQ_FIELDS:
        if _blank(fields.get(name)):
            problems[name] = "required for question papers"

    exam_type = fields.get("exam_type")
    if not _blank(exam_type) and exam_type.strip().lower() not in {e.value for e in ExamType}:
        problems["exam_type"] = f"must be one of {[e.value for e in ExamType]}"

    semester_type = fields.get("semester_type")
    if not _blank(semester_type) and semester_type.strip().lower() not in {s.value for s in SemesterType}:
        problems["semester_type"] = f"must be one of {[s.value for s in SemesterType]}"

    academic_year = fields.get("academic_year")
    if not _blank(academic_year):
        reason = validate_academic_year(academic_year)
        if reason:
            problems["academic_year"] = reason

    return problems

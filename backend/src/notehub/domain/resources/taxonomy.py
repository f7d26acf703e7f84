"""Categorical vocabulary for uploaded resources."""

from enum import Enum


class ResourceKind(str, Enum):
    NOTES = "notes"
    PYQ = "pyq"  # Previous year question paper


class ExamType(str, Enum):
    SESSIONAL = "sessional"
    SEMESTER = "semester"


class SemesterType(str, Enum):
    ODD = "odd"
    EVEN = "even"


# Placeholder subject written at intake. A row carrying it has not been
# curated yet and is never published.
SENTINEL_SUBJECT = "Pending Review"

# Descriptive fields an admin must supply before a resource can be published
REQUIRED_CURATED_FIELDS = ("title", "subject", "branch", "semester")

# Extra fields required for question papers
PYQ_FIELDS = ("exam_type", "academic_year", "semester_type")

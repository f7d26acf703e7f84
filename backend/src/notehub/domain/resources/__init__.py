"""Resources domain module - upload validation, fingerprints, review lifecycle"""

from .resource_status import (
    ResourceStatus,
    ModerationAction,
    ALLOWED_TRANSITIONS,
    can_apply,
    validate_action,
)
from .taxonomy import (
    ResourceKind,
    ExamType,
    SemesterType,
    SENTINEL_SUBJECT,
    REQUIRED_CURATED_FIELDS,
    PYQ_FIELDS,
)
from .validation import (
    is_supported_mime_type,
    looks_like_pdf,
    filename_problem,
    content_problem,
    sanitize_filename,
    PDF_MIME_TYPE,
)
from .fingerprint import fingerprint_stream, FingerprintedContent, ContentTooLarge
from .curation_rules import find_curation_problems

__all__ = [
    "ResourceStatus",
    "ModerationAction",
    "ALLOWED_TRANSITIONS",
    "can_apply",
    "validate_action",
    "ResourceKind",
    "ExamType",
    "SemesterType",
    "SENTINEL_SUBJECT",
    "REQUIRED_CURATED_FIELDS",
    "PYQ_FIELDS",
    "is_supported_mime_type",
    "looks_like_pdf",
    "filename_problem",
    "content_problem",
    "sanitize_filename",
    "PDF_MIME_TYPE",
    "fingerprint_stream",
    "FingerprintedContent",
    "ContentTooLarge",
    "find_curation_problems",
]

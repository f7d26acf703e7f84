"""Upload checks for notes and question papers.

Only PDFs are accepted. Each check returns a short problem description
(shown to the uploader next to the offending field) or None. The size
limit is the server's; whatever the upload form enforces is irrelevant.
"""

import os
import re
from typing import Optional

PDF_MIME_TYPE = "application/pdf"

# ISO 32000 file header
PDF_MAGIC = b"%PDF-"

MAX_FILENAME_LENGTH = 255

_UNSAFE_FILENAME_CHARS = re.compile(r"[^\w\s.-]")
_SEPARATOR_RUNS = re.compile(r"[\s_]+")


def is_supported_mime_type(mime_type: Optional[str]) -> bool:
    """Declared type, parameters and case ignored.

    Example:
        >>> is_supported_mime_type('Application/PDF; charset=binary')
        True
        >>> is_supported_mime_type('application/msword')
        False
    """
    return (mime_type or "").split(";")[0].strip().lower() == PDF_MIME_TYPE


def looks_like_pdf(content: bytes) -> bool:
    return content.startswith(PDF_MAGIC)


def filename_problem(filename: Optional[str]) -> Optional[str]:
    """Reject empty, oversized, path-like, control-character and non-.pdf names.

    Example:
        >>> filename_problem('maths-unit-1.pdf') is None
        True
        >>> filename_problem('../../etc/passwd')
        'Filename contains path traversal or directory separators'
    """
    if not filename or not filename.strip():
        return "Filename cannot be empty"
    if len(filename) > MAX_FILENAME_LENGTH:
        return f"Filename exceeds {MAX_FILENAME_LENGTH} characters (got {len(filename)})"
    if ".." in filename or "/" in filename or "\\" in filename:
        return "Filename contains path traversal or directory separators"
    if any(ord(c) < 32 for c in filename):
        return "Filename contains control characters"
    if not filename.lower().endswith(".pdf"):
        return "Only .pdf files can be uploaded"
    return None


def content_problem(content: bytes, max_size: int) -> Optional[str]:
    """Size bounds first, then the PDF header.

    The declared MIME type comes from the browser, so the bytes are checked
    as well.
    """
    size = len(content)
    if size == 0:
        return "File is empty (0 bytes)"
    if size > max_size:
        return f"File exceeds maximum size of {max_size} bytes (got {size} bytes)"
    if not looks_like_pdf(content):
        return "File is not a valid PDF"
    return None


def sanitize_filename(filename: str) -> str:
    """Display-safe version of the uploader's filename.

    Example:
        >>> sanitize_filename('DBMS notes (unit 2).pdf')
        'DBMS_notes_unit_2_.pdf'
    """
    name = _SEPARATOR_RUNS.sub("_", _UNSAFE_FILENAME_CHARS.sub("_", os.path.basename(filename)))
    if len(name) > MAX_FILENAME_LENGTH:
        stem, ext = os.path.splitext(name)
        name = stem[:MAX_FILENAME_LENGTH - len(ext)] + ext
    return name

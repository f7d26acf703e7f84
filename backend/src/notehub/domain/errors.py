"""Error taxonomy for the moderation and publication core.

Every failure a core operation can produce is one of these exceptions.
Each carries a stable ``kind`` (the discriminator in the API failure
envelope), an HTTP status for the boundary, and optional structured details.
"""

from typing import Any, Dict, Optional


class NoteHubError(Exception):
    """Base class for all domain failures surfaced to callers."""

    kind: str = "InternalError"
    status_code: int = 500
    redirect_to: Optional[str] = None

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.details = details


class Unauthenticated(NoteHubError):
    """No valid session. The boundary redirects to the login page."""

    kind = "Unauthenticated"
    status_code = 401
    redirect_to = "/login"

    def __init__(self, message: str = "Authentication required", redirect_to: Optional[str] = None):
        super().__init__(message)
        if redirect_to:
            self.redirect_to = redirect_to


class Unauthorized(NoteHubError):
    """Valid session but the caller lacks the required role."""

    kind = "Unauthorized"
    status_code = 403

    def __init__(self, message: str = "Admin access required"):
        super().__init__(message)


class Banned(NoteHubError):
    """The identity or its email is banned. Session has been invalidated."""

    kind = "Banned"
    status_code = 403
    redirect_to = "/banned"

    def __init__(self, message: str = "This account has been banned", redirect_to: Optional[str] = None):
        super().__init__(message)
        if redirect_to:
            self.redirect_to = redirect_to


class FieldValidationError(NoteHubError):
    """Malformed or incomplete input.

    ``fields`` maps each offending field name to a short reason.
    """

    kind = "ValidationError"
    status_code = 422

    def __init__(self, message: str, fields: Optional[Dict[str, str]] = None):
        super().__init__(message, details={"fields": fields or {}})
        self.fields = fields or {}


class DuplicateContent(NoteHubError):
    kind = "DuplicateContent"
    status_code = 409

    def __init__(
        self,
        message: str = "This file has already been uploaded. Duplicate files are not allowed.",
    ):
        super().__init__(message)


class NotFound(NoteHubError):
    kind = "NotFound"
    status_code = 404


class Conflict(NoteHubError):
    """The row changed between read and write (optimistic concurrency)."""

    kind = "Conflict"
    status_code = 409


class InvalidTransition(NoteHubError):
    kind = "InvalidTransition"
    status_code = 409


class StorageWriteFailed(NoteHubError):
    kind = "StorageWriteFailed"
    status_code = 502


class StorageDeleteFailed(NoteHubError):
    kind = "StorageDeleteFailed"
    status_code = 502


class StorageReadFailed(NoteHubError):
    kind = "StorageReadFailed"
    status_code = 502


class MetadataWriteFailed(NoteHubError):
    kind = "MetadataWriteFailed"
    status_code = 500


class MetadataDeleteFailed(NoteHubError):
    kind = "MetadataDeleteFailed"
    status_code = 500

"""Discriminated result envelope returned by every public operation.

Success:  {"ok": true,  "value": ...}
Failure:  {"ok": false, "kind": "...", "message": "...", "details": ..., "redirect_to": ...}
"""

from typing import Any, Generic, Optional, TypeVar

from pydantic import BaseModel

from .errors import NoteHubError

T = TypeVar("T")


class OperationResult(BaseModel, Generic[T]):
    ok: bool
    value: Optional[T] = None
    kind: Optional[str] = None
    message: Optional[str] = None
    details: Optional[Any] = None
    redirect_to: Optional[str] = None

    @classmethod
    def success(cls, value: Any) -> "OperationResult":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: NoteHubError) -> "OperationResult":
        return cls(
            ok=False,
            kind=error.kind,
            message=error.message,
            details=error.details,
            redirect_to=error.redirect_to,
        )

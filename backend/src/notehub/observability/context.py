"""Per-request correlation values carried through async code.

The request ID is set by RequestIDMiddleware. The identity ID is set once
the caller's session has been resolved, so log lines from the moderation
core can be attributed to an admin or uploader.
"""

import uuid
from contextvars import ContextVar
from typing import Optional

request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)
identity_id_var: ContextVar[Optional[str]] = ContextVar("identity_id", default=None)


def generate_request_id() -> str:
    return str(uuid.uuid4())


def get_request_id() -> str:
    return request_id_var.get() or "no-request-id"


def set_request_id(request_id: str) -> None:
    request_id_var.set(request_id)


def get_identity_id() -> Optional[str]:
    return identity_id_var.get()


def set_identity_id(identity_id) -> None:
    identity_id_var.set(str(identity_id) if identity_id else None)

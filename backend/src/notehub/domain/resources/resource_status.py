"""Resource moderation state machine.

State flow:
    (submitted) → PENDING → APPROVED     via approve (terminal)
                  PENDING → (deleted)    via reject  (terminal, row and blob removed)

Deletion is physical: a rejected resource ceases to exist, so it has no
persisted status. APPROVED has no outgoing moderation actions; pulling
published content goes through the file manager's hard delete instead.
"""

from enum import Enum
from typing import Dict, List, Optional

from ..errors import InvalidTransition


class ResourceStatus(str, Enum):
    """Persisted review status of a resource."""
    PENDING = "pending"    # Awaiting admin review, never publicly visible
    APPROVED = "approved"  # Curated and published (terminal)


class ModerationAction(str, Enum):
    APPROVE = "approve"
    REJECT = "reject"


# Outcome of each action per current status. None as an outcome means the
# resource is physically deleted.
ALLOWED_TRANSITIONS: Dict[ResourceStatus, Dict[ModerationAction, Optional[ResourceStatus]]] = {
    ResourceStatus.PENDING: {
        ModerationAction.APPROVE: ResourceStatus.APPROVED,
        ModerationAction.REJECT: None,
    },
    ResourceStatus.APPROVED: {},  # Terminal
}


def can_apply(status: ResourceStatus, action: ModerationAction) -> bool:
    """Check whether a moderation action is allowed from a status.

    Example:
        >>> can_apply(ResourceStatus.PENDING, ModerationAction.APPROVE)
        True
        >>> can_apply(ResourceStatus.APPROVED, ModerationAction.REJECT)
        False
    """
    return action in ALLOWED_TRANSITIONS.get(ResourceStatus(status), {})


def validate_action(status: ResourceStatus, action: ModerationAction) -> Optional[ResourceStatus]:
    """Validate a moderation action and return the resulting status.

    Args:
        status: Current status of the resource
        action: Action the admin wants to apply

    Returns:
        The status after the action, or None if the action deletes the resource

    Raises:
        InvalidTransition: If the action is not allowed from ``status``
    """
    status = ResourceStatus(status)
    allowed = ALLOWED_TRANSITIONS.get(status, {})
    if action not in allowed:
        raise InvalidTransition(
            f"Cannot {action.value} a resource that is {status.value}. "
            f"Allowed actions: {[a.value for a in allowed] or 'none'}"
        )
    return allowed[action]


def get_allowed_actions(status: ResourceStatus) -> List[ModerationAction]:
    return list(ALLOWED_TRANSITIONS.get(ResourceStatus(status), {}))

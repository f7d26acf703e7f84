"""Unit tests for the resource moderation state machine"""

import pytest

from notehub.domain.errors import InvalidTransition
from notehub.domain.resources import (
    ALLOWED_TRANSITIONS,
    ModerationAction,
    ResourceStatus,
    can_apply,
    validate_action,
)
from notehub.domain.resources.resource_status import get_allowed_actions


class TestResourceStatusStateMachine:
    """Test ResourceStatus enum and moderation action validation"""

    def test_status_enum_values(self):
        assert ResourceStatus.PENDING.value == "pending"
        assert ResourceStatus.APPROVED.value == "approved"
        assert len(ResourceStatus) == 2

    def test_pending_can_be_approved(self):
        assert can_apply(ResourceStatus.PENDING, ModerationAction.APPROVE) is True
        assert validate_action(ResourceStatus.PENDING, ModerationAction.APPROVE) == ResourceStatus.APPROVED

    def test_pending_reject_deletes(self):
        """Reject has no resulting status: the resource is removed"""
        assert can_apply(ResourceStatus.PENDING, ModerationAction.REJECT) is True
        assert validate_action(ResourceStatus.PENDING, ModerationAction.REJECT) is None

    def test_approved_is_terminal(self):
        assert ALLOWED_TRANSITIONS[ResourceStatus.APPROVED] == {}
        assert get_allowed_actions(ResourceStatus.APPROVED) == []
        for action in ModerationAction:
            assert can_apply(ResourceStatus.APPROVED, action) is False

    @pytest.mark.parametrize("action", list(ModerationAction))
    def test_actions_on_approved_raise(self, action):
        with pytest.raises(InvalidTransition) as exc_info:
            validate_action(ResourceStatus.APPROVED, action)
        assert "approved" in exc_info.value.message
        assert exc_info.value.kind == "InvalidTransition"

    def test_string_status_accepted(self):
        """Statuses loaded as plain strings are coerced"""
        assert can_apply("pending", ModerationAction.APPROVE) is True
        assert can_apply("approved", ModerationAction.APPROVE) is False

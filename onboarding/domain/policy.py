"""Role-based access decisions for onboarding records."""

from __future__ import annotations

import enum

import structlog
from onboarding.core.auth import Role
from onboarding.domain.errors import AuthorizationDenied
from onboarding.domain.models import User

logger = structlog.get_logger()


class Action(str, enum.Enum):
    READ_PROGRESS = "read_progress"
    READ_SUBMISSIONS = "read_submissions"
    WRITE_SUBMISSION = "write_submission"
    AMEND_SUBMISSION = "amend_submission"
    READ_ACCOUNT = "read_account"
    UPDATE_PROFILE = "update_profile"
    LIST_ALL = "list_all"
    MANAGE_ACCOUNT = "manage_account"
    DEACTIVATE_ACCOUNT = "deactivate_account"
    OVERRIDE_STATUS = "override_status"
    PROVISION_PRIVILEGED = "provision_privileged"


class Decision(str, enum.Enum):
    ALLOW = "allow"
    DENY = "deny"


# Actions any caller may perform on their own records.
_SELF_ACTIONS = frozenset(
    {
        Action.READ_PROGRESS,
        Action.READ_SUBMISSIONS,
        Action.WRITE_SUBMISSION,
        Action.AMEND_SUBMISSION,
        Action.READ_ACCOUNT,
        Action.UPDATE_PROFILE,
    }
)

# Read-only elevated access shared by managers and admins.
_PRIVILEGED_READS = frozenset(
    {
        Action.READ_PROGRESS,
        Action.READ_SUBMISSIONS,
        Action.READ_ACCOUNT,
        Action.LIST_ALL,
    }
)

_ADMIN_ONLY = frozenset(
    {
        Action.AMEND_SUBMISSION,
        Action.MANAGE_ACCOUNT,
        Action.DEACTIVATE_ACCOUNT,
        Action.OVERRIDE_STATUS,
        Action.PROVISION_PRIVILEGED,
    }
)


def can_access(
    actor_role: Role | str,
    actor_id: str,
    target_employee_id: str | None,
    action: Action,
) -> Decision:
    """Decide whether ``actor`` may perform ``action`` on ``target_employee_id``.

    ``target_employee_id`` is ``None`` for actions that are not scoped to a
    single account (listing, privileged provisioning).
    """
    try:
        role = Role(actor_role)
    except ValueError:
        return Decision.DENY

    if target_employee_id is not None and target_employee_id == actor_id:
        if action in _SELF_ACTIONS:
            return Decision.ALLOW

    if role is Role.ADMIN and (action in _PRIVILEGED_READS or action in _ADMIN_ONLY):
        return Decision.ALLOW

    if role is Role.MANAGER and action in _PRIVILEGED_READS:
        return Decision.ALLOW

    return Decision.DENY


def enforce(actor: User, target_employee_id: str | None, action: Action) -> None:
    """Raise ``AuthorizationDenied`` unless the policy allows the action."""
    decision = can_access(actor.role, actor.user_id, target_employee_id, action)
    if decision is Decision.DENY:
        logger.warning(
            "access_denied",
            actor_id=actor.user_id,
            actor_role=actor.role.value,
            target_id=target_employee_id,
            action=action.value,
        )
        raise AuthorizationDenied(f"Not permitted to {action.value.replace('_', ' ')}")


__all__ = ["Action", "Decision", "can_access", "enforce"]

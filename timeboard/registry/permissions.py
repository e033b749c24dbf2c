"""Authorization decisions for registry writes.

``authorize`` is a pure function of (principal, action, target, quota
snapshot). It logs nothing and touches no storage; the service records the
outcome.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass

from timeboard.entities.team_member import MemberStatus
from timeboard.registry.quota import MAX_ACTIVE_PER_USER
from timeboard.schemas.members import Principal, Role, TeamMemberRecord

REASON_QUOTA = "quota exceeded"
REASON_UNAUTHORIZED = "unauthorized"
REASON_FORBIDDEN = "forbidden"


class Action(str, enum.Enum):
    CREATE = "create"
    DELETE = "delete"


@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: str = ""
    # Only meaningful for an allowed CREATE
    status: MemberStatus | None = None
    created_by: str | None = None
    creator_role: Role | None = None

    @classmethod
    def deny(cls, reason: str) -> "Decision":
        return cls(allowed=False, reason=reason)


def authorize(
    principal: Principal | None,
    action: Action,
    target: TeamMemberRecord | None = None,
    active_count: int = 0,
) -> Decision:
    """Decide whether ``principal`` may perform ``action``.

    ``active_count`` is the principal's active-member count read from the
    store; it is ignored for admins and for deletes.
    """
    if action is Action.CREATE:
        return _authorize_create(principal, active_count)
    if action is Action.DELETE:
        return _authorize_delete(principal, target)
    raise ValueError(f"unsupported action: {action!r}")


def _authorize_create(principal: Principal | None, active_count: int) -> Decision:
    if principal is None:
        # Public self-signup: accepted, but never counts as active.
        return Decision(allowed=True, status=MemberStatus.PENDING)
    if principal.role is Role.ADMIN:
        return Decision(
            allowed=True,
            status=MemberStatus.ACTIVE,
            created_by=principal.id,
            creator_role=Role.ADMIN,
        )
    if active_count >= MAX_ACTIVE_PER_USER:
        return Decision.deny(REASON_QUOTA)
    return Decision(
        allowed=True,
        status=MemberStatus.ACTIVE,
        created_by=principal.id,
        creator_role=Role.USER,
    )


def _authorize_delete(principal: Principal | None, target: TeamMemberRecord | None) -> Decision:
    if principal is None:
        return Decision.deny(REASON_UNAUTHORIZED)
    if principal.role is Role.ADMIN:
        return Decision(allowed=True)
    if target is not None and target.created_by is not None and target.created_by == principal.id:
        return Decision(allowed=True)
    return Decision.deny(REASON_FORBIDDEN)

"""Creation quota: how many active members a principal already owns."""

from __future__ import annotations

from collections.abc import Iterable

from timeboard.entities.team_member import MemberStatus
from timeboard.schemas.members import TeamMemberRecord

MAX_ACTIVE_PER_USER = 1


def active_count_for(principal_id: str | None, snapshot: Iterable[TeamMemberRecord]) -> int:
    """Count active records created by ``principal_id`` in ``snapshot``.

    The snapshot must come from the store at decision time; a list cached by a
    client is never good enough.
    """
    if principal_id is None:
        return 0
    return sum(
        1
        for record in snapshot
        if record.created_by == principal_id and record.status == MemberStatus.ACTIVE
    )

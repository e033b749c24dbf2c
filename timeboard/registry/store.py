"""Registry storage contract and the transactional (table) backend."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from typing import Protocol, TypeVar

from sqlalchemy import delete, select
from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from timeboard.config import settings
from timeboard.entities.team_member import TeamMember, MemberStatus
from timeboard.errors import Conflict, NotFound, QuotaExceeded, StorageError
from timeboard.schemas.members import MemberDraft, Role, TeamMemberRecord

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Called with the store's view of existing members right before a write;
# raises to veto the write.
Guard = Callable[[Sequence[TeamMemberRecord]], None]


class RegistryStore(Protocol):
    async def list_members(self) -> list[TeamMemberRecord]: ...

    async def get(self, member_id: int) -> TeamMemberRecord | None: ...

    async def find_by_idempotency_key(self, key: str) -> TeamMemberRecord | None: ...

    async def insert(self, draft: MemberDraft, guard: Guard | None = None) -> TeamMemberRecord: ...

    async def delete(self, member_id: int) -> TeamMemberRecord: ...


async def storage_call(awaitable: Awaitable[T], timeout: float | None) -> T:
    """Await a storage coroutine, mapping transport failures to StorageError."""
    try:
        return await asyncio.wait_for(awaitable, timeout)
    except asyncio.TimeoutError as exc:
        raise StorageError(f"storage call timed out after {timeout:.1f}s") from exc
    except IntegrityError:
        raise
    except (DBAPIError, OSError) as exc:
        raise StorageError(f"{type(exc).__name__}: storage backend unavailable") from exc


def claim_replay(existing: TeamMemberRecord, created_by: str | None) -> TeamMemberRecord:
    """Return ``existing`` as the replay of a keyed create by ``created_by``.

    Keys belong to the caller that first used them; anyone else presenting
    the same key gets a Conflict rather than another caller's record.
    """
    if existing.created_by != created_by:
        raise Conflict("idempotency key already used")
    logger.info("Idempotent replay of key %s -> member %d", existing.idempotency_key, existing.id)
    return existing


def newest_first(records: list[TeamMemberRecord]) -> list[TeamMemberRecord]:
    return sorted(records, key=lambda r: (r.created_at, r.id), reverse=True)


class TableRegistryStore:
    """Team members as rows of ``team_members``.

    The partial unique index on ``created_by`` makes the quota check and the
    insert one atomic step: of two concurrent inserts for the same user only
    one can commit, the other fails with an IntegrityError that surfaces as
    ``QuotaExceeded``.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        timeout: float | None = None,
    ):
        self._session_factory = session_factory
        self._timeout = timeout if timeout is not None else settings.storage_timeout

    async def list_members(self) -> list[TeamMemberRecord]:
        return await storage_call(self._list_members(), self._timeout)

    async def get(self, member_id: int) -> TeamMemberRecord | None:
        return await storage_call(self._get(member_id), self._timeout)

    async def find_by_idempotency_key(self, key: str) -> TeamMemberRecord | None:
        return await storage_call(self._find_by_idempotency_key(key), self._timeout)

    async def insert(self, draft: MemberDraft, guard: Guard | None = None) -> TeamMemberRecord:
        return await storage_call(self._insert(draft, guard), self._timeout)

    async def delete(self, member_id: int) -> TeamMemberRecord:
        return await storage_call(self._delete(member_id), self._timeout)

    async def _list_members(self) -> list[TeamMemberRecord]:
        async with self._session_factory() as db:
            result = await db.execute(
                select(TeamMember).order_by(TeamMember.created_at.desc(), TeamMember.id.desc())
            )
            return [TeamMemberRecord.model_validate(row) for row in result.scalars().all()]

    async def _get(self, member_id: int) -> TeamMemberRecord | None:
        async with self._session_factory() as db:
            row = await db.get(TeamMember, member_id)
            return TeamMemberRecord.model_validate(row) if row else None

    async def _find_by_idempotency_key(self, key: str) -> TeamMemberRecord | None:
        async with self._session_factory() as db:
            result = await db.execute(
                select(TeamMember).where(TeamMember.idempotency_key == key)
            )
            row = result.scalar_one_or_none()
            return TeamMemberRecord.model_validate(row) if row else None

    async def _insert(self, draft: MemberDraft, guard: Guard | None) -> TeamMemberRecord:
        async with self._session_factory() as db:
            if guard is not None and draft.created_by is not None:
                result = await db.execute(
                    select(TeamMember).where(TeamMember.created_by == draft.created_by)
                )
                guard([TeamMemberRecord.model_validate(r) for r in result.scalars().all()])

            row = TeamMember(**draft.model_dump(mode="json"))
            db.add(row)
            try:
                await db.commit()
            except IntegrityError as exc:
                await db.rollback()
                return await self._resolve_integrity_error(draft, exc)
            await db.refresh(row)
            return TeamMemberRecord.model_validate(row)

    async def _resolve_integrity_error(
        self, draft: MemberDraft, exc: IntegrityError
    ) -> TeamMemberRecord:
        # Either a replayed idempotency key or the active-creator index.
        if draft.idempotency_key:
            existing = await self._find_by_idempotency_key(draft.idempotency_key)
            if existing is not None:
                return claim_replay(existing, draft.created_by)
        if draft.status == MemberStatus.ACTIVE and draft.creator_role == Role.USER:
            logger.info("Active-creator constraint rejected insert for %s", draft.created_by)
            raise QuotaExceeded() from exc
        raise Conflict(f"insert rejected by a uniqueness constraint: {exc.orig}") from exc

    async def _delete(self, member_id: int) -> TeamMemberRecord:
        async with self._session_factory() as db:
            row = await db.get(TeamMember, member_id)
            if row is None:
                raise NotFound(f"Team member {member_id} not found")
            record = TeamMemberRecord.model_validate(row)
            result = await db.execute(delete(TeamMember).where(TeamMember.id == member_id))
            if result.rowcount == 0:
                # Deleted by someone else between the read and the delete
                await db.rollback()
                raise NotFound(f"Team member {member_id} not found")
            await db.commit()
            return record

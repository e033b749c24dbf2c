"""Document backend: the whole registry as one versioned JSON blob.

Every write carries the version it read. ``UPDATE ... WHERE version = :read``
matches zero rows if another writer got there first; the write is then
replayed from a fresh read, re-running the quota guard against the new
snapshot. A blind delete-then-rewrite of the blob would lose updates.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timezone
from typing import TypeVar

from pydantic import BaseModel
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from timeboard.config import settings
from timeboard.entities.registry_document import RegistryDocument
from timeboard.errors import Conflict, NotFound
from timeboard.registry.store import Guard, claim_replay, newest_first, storage_call
from timeboard.schemas.members import MemberDraft, TeamMemberRecord

logger = logging.getLogger(__name__)

T = TypeVar("T")

DOCUMENT_NAME = "team_members"


class MemberCollection(BaseModel):
    next_id: int = 1
    members: list[TeamMemberRecord] = []


class StaleVersion(Exception):
    """The document changed between read and write."""


class DocumentRegistryStore:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        timeout: float | None = None,
        write_attempts: int | None = None,
        document_name: str = DOCUMENT_NAME,
    ):
        self._session_factory = session_factory
        self._timeout = timeout if timeout is not None else settings.storage_timeout
        self._write_attempts = write_attempts or settings.document_write_attempts
        self._name = document_name

    async def list_members(self) -> list[TeamMemberRecord]:
        collection, _ = await self._read()
        return newest_first(collection.members)

    async def get(self, member_id: int) -> TeamMemberRecord | None:
        collection, _ = await self._read()
        return next((m for m in collection.members if m.id == member_id), None)

    async def find_by_idempotency_key(self, key: str) -> TeamMemberRecord | None:
        collection, _ = await self._read()
        return next((m for m in collection.members if m.idempotency_key == key), None)

    async def insert(self, draft: MemberDraft, guard: Guard | None = None) -> TeamMemberRecord:
        def add(collection: MemberCollection) -> tuple[TeamMemberRecord, bool]:
            if draft.idempotency_key:
                for existing in collection.members:
                    if existing.idempotency_key == draft.idempotency_key:
                        return claim_replay(existing, draft.created_by), False
            if guard is not None:
                guard(collection.members)
            record = TeamMemberRecord(
                id=collection.next_id,
                created_at=datetime.now(timezone.utc),
                **draft.model_dump(),
            )
            collection.next_id += 1
            collection.members.append(record)
            return record, True

        return await self._mutate(add)

    async def delete(self, member_id: int) -> TeamMemberRecord:
        def remove(collection: MemberCollection) -> tuple[TeamMemberRecord, bool]:
            for index, existing in enumerate(collection.members):
                if existing.id == member_id:
                    return collection.members.pop(index), True
            raise NotFound(f"Team member {member_id} not found")

        return await self._mutate(remove)

    async def _mutate(
        self, change: Callable[[MemberCollection], tuple[T, bool]]
    ) -> T:
        """Apply ``change`` to a fresh snapshot and compare-and-swap it back.

        ``change`` returns (result, dirty); a clean result skips the write.
        """
        for attempt in range(1, self._write_attempts + 1):
            collection, version = await self._read()
            result, dirty = change(collection)
            if not dirty:
                return result
            try:
                await self._write(collection, version)
            except StaleVersion:
                logger.info(
                    "Document %s moved past version %d, replaying write (attempt %d/%d)",
                    self._name, version, attempt, self._write_attempts,
                )
                continue
            return result
        raise Conflict(
            f"registry document kept changing after {self._write_attempts} attempts; retry"
        )

    async def _read(self) -> tuple[MemberCollection, int]:
        return await storage_call(self._read_document(), self._timeout)

    async def _write(self, collection: MemberCollection, expected_version: int) -> None:
        await storage_call(self._write_document(collection, expected_version), self._timeout)

    async def _read_document(self) -> tuple[MemberCollection, int]:
        async with self._session_factory() as db:
            doc = await db.get(RegistryDocument, self._name)
            if doc is None:
                return MemberCollection(), 0
            return MemberCollection.model_validate_json(doc.payload), doc.version

    async def _write_document(self, collection: MemberCollection, expected_version: int) -> None:
        payload = collection.model_dump_json()
        async with self._session_factory() as db:
            if expected_version == 0:
                db.add(RegistryDocument(name=self._name, payload=payload, version=1))
                try:
                    await db.commit()
                except IntegrityError as exc:
                    await db.rollback()
                    raise StaleVersion(self._name) from exc
                return

            result = await db.execute(
                update(RegistryDocument)
                .where(
                    RegistryDocument.name == self._name,
                    RegistryDocument.version == expected_version,
                )
                .values(payload=payload, version=expected_version + 1)
            )
            if result.rowcount != 1:
                await db.rollback()
                raise StaleVersion(self._name)
            await db.commit()

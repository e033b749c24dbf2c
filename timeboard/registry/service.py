"""Registry service — List/Get/Create/Delete over a RegistryStore.

The service is stateless between calls; all shared state lives in the store,
so concurrent correctness is a property of the storage layer.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone
from typing import TypeVar

from timeboard.config import settings
from timeboard.errors import (
    Forbidden,
    NotFound,
    QuotaExceeded,
    RegistryError,
    StorageError,
    Unauthorized,
    ValidationError,
)
from timeboard.registry.permissions import (
    REASON_FORBIDDEN,
    REASON_QUOTA,
    REASON_UNAUTHORIZED,
    Action,
    Decision,
    authorize,
)
from timeboard.registry.quota import active_count_for
from timeboard.registry.store import Guard, RegistryStore, claim_replay
from timeboard.registry.working_status import (
    format_utc_offset,
    is_valid_zone,
    local_time,
    parse_hhmm,
    working_status,
)
from timeboard.schemas.members import (
    MemberCreate,
    MemberDraft,
    MemberResponse,
    Principal,
    TeamMemberRecord,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

_DENY_ERRORS: dict[str, type[RegistryError]] = {
    REASON_QUOTA: QuotaExceeded,
    REASON_UNAUTHORIZED: Unauthorized,
    REASON_FORBIDDEN: Forbidden,
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def deny_error(decision: Decision) -> RegistryError:
    """Translate a denied decision into the error surfaced to the caller."""
    return _DENY_ERRORS.get(decision.reason, Forbidden)(decision.reason)


def annotate(record: TeamMemberRecord, now: datetime) -> MemberResponse:
    """Attach the member's local time and working status at ``now``."""
    try:
        local = local_time(record.timezone, now)
    except ValueError:
        # Stored zone no longer resolves; show UTC and flag it unknown.
        local = now.astimezone(timezone.utc)
    status = working_status(record.timezone, record.work_start, record.work_end, now)
    return MemberResponse(
        **record.model_dump(exclude={"creator_role", "idempotency_key"}),
        working_status=status.value,
        local_time=local,
        utc_offset=format_utc_offset(local),
    )


class RegistryService:
    def __init__(
        self,
        store: RegistryStore,
        clock: Callable[[], datetime] = _utcnow,
        max_retries: int | None = None,
        retry_base_delay: float | None = None,
        require_auth_for_reads: bool | None = None,
        default_flag: str | None = None,
    ):
        self.store = store
        self._clock = clock
        self._max_retries = (
            max_retries if max_retries is not None else settings.storage_max_retries
        )
        self._retry_base_delay = (
            retry_base_delay if retry_base_delay is not None else settings.storage_retry_base_delay
        )
        self._require_auth_for_reads = (
            require_auth_for_reads
            if require_auth_for_reads is not None
            else settings.require_auth_for_reads
        )
        self._default_flag = default_flag or settings.default_flag

    def now(self) -> datetime:
        return self._clock()

    # ── reads ──

    async def list_members(self, principal: Principal | None = None) -> list[MemberResponse]:
        self._check_read_access(principal)
        records = await self._with_retry("list", self.store.list_members)
        now = self._clock()
        return [annotate(record, now) for record in records]

    async def get_member(
        self, member_id: int, principal: Principal | None = None
    ) -> MemberResponse:
        self._check_read_access(principal)
        record = await self._with_retry("get", lambda: self.store.get(member_id))
        if record is None:
            raise NotFound(f"Team member {member_id} not found")
        return annotate(record, self._clock())

    # ── writes ──

    async def create_member(
        self,
        principal: Principal | None,
        payload: MemberCreate,
        idempotency_key: str | None = None,
    ) -> TeamMemberRecord:
        """Validate, authorize and insert a member.

        Without an idempotency key a retried request creates a second record,
        so storage failures on that path are surfaced instead of retried.
        """
        fields = self._validate(payload)

        if idempotency_key:
            existing = await self._with_retry(
                "create", lambda: self.store.find_by_idempotency_key(idempotency_key)
            )
            if existing is not None:
                caller_id = principal.id if principal else None
                return claim_replay(existing, caller_id)

        active_count = 0
        if principal is not None and not principal.is_admin:
            snapshot = await self._with_retry("create", self.store.list_members)
            active_count = active_count_for(principal.id, snapshot)

        decision = authorize(principal, Action.CREATE, active_count=active_count)
        if not decision.allowed:
            logger.info("Create denied for %s: %s", principal.id if principal else "anonymous", decision.reason)
            raise deny_error(decision)

        draft = MemberDraft(
            **fields,
            status=decision.status,
            created_by=decision.created_by,
            creator_role=decision.creator_role,
            idempotency_key=idempotency_key,
        )
        guard = self._quota_guard(principal)

        if idempotency_key:
            record = await self._with_retry("create", lambda: self.store.insert(draft, guard=guard))
        else:
            record = await self.store.insert(draft, guard=guard)

        logger.info(
            "Created team member %d (%s) status=%s by %s",
            record.id, record.name, record.status.value, record.created_by or "anonymous",
        )
        return record

    async def delete_member(self, principal: Principal | None, member_id: int) -> TeamMemberRecord:
        if principal is None:
            raise deny_error(authorize(None, Action.DELETE))

        target = await self._with_retry("delete", lambda: self.store.get(member_id))
        if target is None:
            raise NotFound(f"Team member {member_id} not found")

        decision = authorize(principal, Action.DELETE, target=target)
        if not decision.allowed:
            logger.info(
                "Delete of member %d denied for %s (creator %s): %s",
                member_id, principal.id, target.created_by, decision.reason,
            )
            raise deny_error(decision)

        removed = await self._with_retry("delete", lambda: self.store.delete(member_id))
        logger.info("Deleted team member %d (%s) by %s", removed.id, removed.name, principal.id)
        return removed

    # ── helpers ──

    def _check_read_access(self, principal: Principal | None) -> None:
        if self._require_auth_for_reads and principal is None:
            raise Unauthorized()

    def _validate(self, payload: MemberCreate) -> dict:
        name = (payload.name or "").strip()
        location = (payload.location or "").strip()
        tz_name = (payload.timezone or "").strip()

        missing = [
            field for field, value in (("name", name), ("location", location), ("timezone", tz_name))
            if not value
        ]
        if missing:
            raise ValidationError("Name, location, and timezone are required (missing: %s)" % ", ".join(missing))
        if not is_valid_zone(tz_name):
            raise ValidationError(f"Unknown IANA timezone: {tz_name!r}")

        work_start = (payload.work_start or "").strip() or None
        work_end = (payload.work_end or "").strip() or None
        if (work_start is None) != (work_end is None):
            raise ValidationError("work_start and work_end must be given together")
        for label, value in (("work_start", work_start), ("work_end", work_end)):
            if value is not None and parse_hhmm(value) is None:
                raise ValidationError(f"{label} must be HH:mm, got {value!r}")

        return {
            "name": name,
            "location": location,
            "timezone": tz_name,
            "flag": (payload.flag or "").strip() or self._default_flag,
            "work_start": work_start,
            "work_end": work_end,
        }

    def _quota_guard(self, principal: Principal | None) -> Guard | None:
        """Re-run the create decision against the store's write-time snapshot."""
        if principal is None or principal.is_admin:
            return None

        def guard(snapshot) -> None:
            decision = authorize(
                principal, Action.CREATE, active_count=active_count_for(principal.id, snapshot)
            )
            if not decision.allowed:
                raise deny_error(decision)

        return guard

    async def _with_retry(self, operation: str, call: Callable[[], Awaitable[T]]) -> T:
        """Run ``call``, retrying StorageError with exponential backoff."""
        for attempt in range(self._max_retries + 1):
            try:
                return await call()
            except StorageError as exc:
                if attempt >= self._max_retries:
                    logger.error(
                        "Storage failure during %s after %d attempts: %s",
                        operation, attempt + 1, exc.detail,
                    )
                    raise
                delay = self._retry_base_delay * (2 ** attempt)
                logger.warning(
                    "Storage failure during %s, retrying in %.2fs (attempt %d/%d): %s",
                    operation, delay, attempt + 1, self._max_retries, exc.detail,
                )
                await asyncio.sleep(delay)
        # Unreachable: the loop either returns or re-raises
        raise StorageError()

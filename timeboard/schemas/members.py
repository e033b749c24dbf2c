"""Pydantic schemas for team-member endpoints and the registry core."""

from __future__ import annotations

import enum
from datetime import datetime, timezone as dt_timezone

from pydantic import BaseModel, Field, field_validator

from timeboard.entities.team_member import MemberStatus


class Role(str, enum.Enum):
    ADMIN = "admin"
    USER = "user"


class Principal(BaseModel):
    """Caller identity handed over by the upstream identity provider."""

    id: str
    email: str = ""
    role: Role = Role.USER

    model_config = {"frozen": True}

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN


class MemberCreate(BaseModel):
    # Required-ness is checked by the registry so every transport gets the
    # same ValidationError, not only HTTP.
    name: str | None = None
    location: str | None = None
    timezone: str | None = None
    flag: str | None = None
    work_start: str | None = Field(default=None, description="Local start, HH:mm")
    work_end: str | None = Field(default=None, description="Local end, HH:mm")


class MemberDraft(BaseModel):
    """A validated member ready to be inserted; the store assigns id."""

    name: str
    location: str
    timezone: str
    flag: str
    status: MemberStatus
    created_by: str | None = None
    creator_role: Role | None = None
    work_start: str | None = None
    work_end: str | None = None
    idempotency_key: str | None = None


class TeamMemberRecord(BaseModel):
    """Persisted shape shared by both registry backends."""

    id: int
    name: str
    location: str
    timezone: str
    flag: str
    status: MemberStatus
    created_by: str | None = None
    creator_role: Role | None = None
    work_start: str | None = None
    work_end: str | None = None
    idempotency_key: str | None = None
    created_at: datetime

    model_config = {"from_attributes": True}

    @field_validator("created_at")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        # SQLite hands back naive datetimes
        return value if value.tzinfo else value.replace(tzinfo=dt_timezone.utc)


class MemberResponse(BaseModel):
    id: int
    name: str
    location: str
    timezone: str
    flag: str
    status: MemberStatus
    created_by: str | None
    created_at: datetime
    work_start: str | None = None
    work_end: str | None = None
    working_status: str
    local_time: datetime
    utc_offset: str

    model_config = {"from_attributes": True}

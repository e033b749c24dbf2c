"""TeamMember model — one row per person shown on the timezone board."""

from datetime import datetime, timezone as dt_timezone

from sqlalchemy import String, DateTime, Integer, Index, text
from sqlalchemy.orm import Mapped, mapped_column
import enum

from timeboard.database import Base


class MemberStatus(str, enum.Enum):
    ACTIVE = "active"
    PENDING = "pending"  # created without an authenticated principal


# Non-admin creators may own at most one active member. Enforced by the
# database so concurrent inserts cannot both succeed.
ACTIVE_CREATOR_INDEX = "uq_team_members_active_creator"
_ACTIVE_QUOTA_WHERE = text("status = 'active' AND creator_role = 'user'")


class TeamMember(Base):
    __tablename__ = "team_members"
    __table_args__ = (
        Index(
            ACTIVE_CREATOR_INDEX,
            "created_by",
            unique=True,
            sqlite_where=_ACTIVE_QUOTA_WHERE,
            postgresql_where=_ACTIVE_QUOTA_WHERE,
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    location: Mapped[str] = mapped_column(String(200), nullable=False)
    timezone: Mapped[str] = mapped_column(String(64), nullable=False)  # IANA id
    flag: Mapped[str] = mapped_column(String(32), nullable=False)
    status: Mapped[str] = mapped_column(String(20), default=MemberStatus.ACTIVE.value)

    # Ownership
    created_by: Mapped[str] = mapped_column(String(100), nullable=True)
    creator_role: Mapped[str] = mapped_column(String(20), nullable=True)  # admin, user

    # Working window, local HH:mm
    work_start: Mapped[str] = mapped_column(String(5), nullable=True)
    work_end: Mapped[str] = mapped_column(String(5), nullable=True)

    idempotency_key: Mapped[str] = mapped_column(String(200), nullable=True, unique=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(dt_timezone.utc)
    )

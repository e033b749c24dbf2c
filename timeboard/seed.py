"""Seed the demo team shown on a fresh board."""

from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from timeboard.entities.team_member import MemberStatus
from timeboard.registry import build_store
from timeboard.schemas.members import MemberDraft

logger = logging.getLogger(__name__)

DEMO_MEMBERS = [
    {"name": "Jorge", "location": "Florida, USA", "timezone": "America/New_York", "flag": "🇺🇸"},
    {"name": "Phillip", "location": "Hanoi, Vietnam", "timezone": "Asia/Ho_Chi_Minh", "flag": "🇻🇳"},
    {"name": "Kevin", "location": "Riga, Latvia", "timezone": "Europe/Riga", "flag": "🇱🇻"},
    {"name": "Caleb", "location": "Sydney, Australia", "timezone": "Australia/Sydney", "flag": "🇦🇺"},
    {
        "name": "Lewis Bright",
        "location": "London, UK",
        "timezone": "Europe/London",
        "flag": "🇬🇧",
        "work_start": "22:00",
        "work_end": "06:00",
    },
]


async def seed_data(session_factory: async_sessionmaker[AsyncSession], backend: str | None = None) -> int:
    """Insert the demo members into an empty registry. Returns rows added."""
    store = build_store(session_factory, backend)
    if await store.list_members():
        logger.info("Registry already populated, skipping seed")
        return 0

    # Seeded members have no creator, so they never count toward a quota.
    for member in DEMO_MEMBERS:
        await store.insert(MemberDraft(status=MemberStatus.ACTIVE, **member))
    logger.info("Seeded %d demo team members", len(DEMO_MEMBERS))
    return len(DEMO_MEMBERS)

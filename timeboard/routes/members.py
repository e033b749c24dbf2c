"""Team member endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Header, Response
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from timeboard.database import get_session_factory
from timeboard.middleware.identity import get_principal
from timeboard.registry import build_store
from timeboard.registry.service import RegistryService, annotate
from timeboard.schemas.members import MemberCreate, MemberResponse, Principal

router = APIRouter(prefix="/team-members", tags=["team-members"])


def get_registry_service(
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> RegistryService:
    return RegistryService(build_store(session_factory))


@router.get("", response_model=list[MemberResponse])
async def list_members(
    principal: Principal | None = Depends(get_principal),
    service: RegistryService = Depends(get_registry_service),
):
    """List all team members, newest first, with their current local time."""
    return await service.list_members(principal)


@router.get("/{member_id}", response_model=MemberResponse)
async def get_member(
    member_id: int,
    principal: Principal | None = Depends(get_principal),
    service: RegistryService = Depends(get_registry_service),
):
    return await service.get_member(member_id, principal)


@router.post("", response_model=MemberResponse, status_code=201)
async def create_member(
    body: MemberCreate,
    idempotency_key: str | None = Header(default=None, alias="Idempotency-Key"),
    principal: Principal | None = Depends(get_principal),
    service: RegistryService = Depends(get_registry_service),
):
    """Add a team member.

    Anonymous submissions are accepted as ``pending``; signed-in users may own
    one active member, admins any number.
    """
    record = await service.create_member(principal, body, idempotency_key=idempotency_key)
    return annotate(record, service.now())


@router.delete("/{member_id}", status_code=204)
async def delete_member(
    member_id: int,
    principal: Principal | None = Depends(get_principal),
    service: RegistryService = Depends(get_registry_service),
):
    """Remove a member; only its creator or an admin may do so."""
    await service.delete_member(principal, member_id)
    return Response(status_code=204)

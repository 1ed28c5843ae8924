"""Admin API — member management and app stats.

Every route is behind admin_gate (applied when the router is included).
Routes that record who acted also take the gate's AuthenticatedMember;
FastAPI caches the dependency so the gate still runs once per request.
"""

import uuid

from fastapi import APIRouter, Depends, Query

from muster.api.deps import get_account_service
from muster.auth.dependencies import AuthenticatedMember, admin_gate
from muster.schemas.admin import AppStats, EventRead, RoleChange
from muster.schemas.member import EnlistRequest, MemberRead
from muster.services.account_service import AccountService

router = APIRouter(prefix="/admin")


@router.get("/stats", response_model=AppStats)
async def app_stats(svc: AccountService = Depends(get_account_service)):
    return await svc.app_stats()


@router.get("/members", response_model=list[MemberRead])
async def list_members(
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    svc: AccountService = Depends(get_account_service),
):
    """Registered and admin members, oldest first."""
    return await svc.list_registered(limit=limit, offset=offset)


@router.post("/members", response_model=MemberRead, status_code=201)
async def create_member(
    body: EnlistRequest,
    svc: AccountService = Depends(get_account_service),
):
    """Create a registered member on someone's behalf (no session issued)."""
    return await svc.enlist(body.name, body.email, body.password1, body.password2)


@router.post("/promote", response_model=MemberRead)
async def promote(
    body: RoleChange,
    admin: AuthenticatedMember = Depends(admin_gate),
    svc: AccountService = Depends(get_account_service),
):
    return await svc.promote(body.member_id, actor_id=admin.member_id)


@router.post("/demote", response_model=MemberRead)
async def demote(
    body: RoleChange,
    admin: AuthenticatedMember = Depends(admin_gate),
    svc: AccountService = Depends(get_account_service),
):
    return await svc.demote(body.member_id, actor_id=admin.member_id)


@router.get("/members/{member_id}/events", response_model=list[EventRead])
async def member_events(
    member_id: uuid.UUID,
    limit: int = Query(100, ge=1, le=500),
    svc: AccountService = Depends(get_account_service),
):
    """Audit trail for one member, oldest first."""
    return await svc.member_events(member_id, limit=limit)

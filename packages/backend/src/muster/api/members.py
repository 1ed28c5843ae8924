"""Member profile and personal API key routes.

Every route here sits behind member_gate and acts only on the caller's own
account: the {member_id} in the path must be the caller's id.

- GET/PUT /members/{member_id} → profile
- GET/POST /members/{member_id}/apikeys → list / generate (key shown once)
- PUT/DELETE /members/{member_id}/apikeys/{key_id} → toggle / delete
"""

import uuid

from fastapi import APIRouter, Depends

from muster.api.deps import get_account_service, get_api_key_service
from muster.auth.dependencies import AuthenticatedMember, member_gate
from muster.config import Settings, get_settings
from muster.errors import AuthorizationError, ValidationError
from muster.schemas.api_key import ApiKeyCreate, ApiKeyCreated, ApiKeyRead, ApiKeyUpdate
from muster.schemas.member import MemberRead, ProfileUpdate
from muster.services.account_service import AccountService
from muster.services.api_key_service import ApiKeyService

router = APIRouter(prefix="/members")


def _require_owner(caller: AuthenticatedMember, member_id: uuid.UUID) -> None:
    if not caller.owns(member_id):
        raise AuthorizationError("Members can only manage their own API keys")


# ─── Profile ────────────────────────────────────────────

@router.get("/{member_id}", response_model=MemberRead)
async def get_profile(
    member_id: uuid.UUID,
    caller: AuthenticatedMember = Depends(member_gate),
    svc: AccountService = Depends(get_account_service),
):
    return await svc.get_profile(caller.member_id, member_id)


@router.put("/{member_id}", response_model=MemberRead)
async def update_profile(
    member_id: uuid.UUID,
    body: ProfileUpdate,
    caller: AuthenticatedMember = Depends(member_gate),
    svc: AccountService = Depends(get_account_service),
):
    return await svc.update_profile(
        caller.member_id,
        member_id,
        name=body.name,
        avatar=body.avatar,
        notifications_enabled=body.notifications_enabled,
    )


# ─── API keys ───────────────────────────────────────────

@router.get("/{member_id}/apikeys", response_model=list[ApiKeyRead])
async def list_api_keys(
    member_id: uuid.UUID,
    caller: AuthenticatedMember = Depends(member_gate),
    svc: ApiKeyService = Depends(get_api_key_service),
):
    """List the caller's API keys (without the actual key values)."""
    _require_owner(caller, member_id)
    return await svc.list_keys(member_id)


@router.post("/{member_id}/apikeys", response_model=ApiKeyCreated, status_code=201)
async def generate_api_key(
    member_id: uuid.UUID,
    body: ApiKeyCreate,
    caller: AuthenticatedMember = Depends(member_gate),
    settings: Settings = Depends(get_settings),
    svc: ApiKeyService = Depends(get_api_key_service),
):
    """Create a new API key. The full key is only returned ONCE."""
    _require_owner(caller, member_id)
    if not settings.allow_external_api:
        raise ValidationError("The external API is disabled")

    api_key, raw_key = await svc.generate(member_id, body.name)
    return {
        "id": api_key.id,
        "name": api_key.name,
        "key": raw_key,  # Only time the full key is returned!
        "prefix": api_key.prefix,
        "active": api_key.active,
        "created_at": api_key.created_at,
    }


@router.put("/{member_id}/apikeys/{key_id}", response_model=list[ApiKeyRead])
async def update_api_key(
    member_id: uuid.UUID,
    key_id: uuid.UUID,
    body: ApiKeyUpdate,
    caller: AuthenticatedMember = Depends(member_gate),
    svc: ApiKeyService = Depends(get_api_key_service),
):
    _require_owner(caller, member_id)
    return await svc.set_active(member_id, key_id, body.active)


@router.delete("/{member_id}/apikeys/{key_id}", response_model=list[ApiKeyRead])
async def delete_api_key(
    member_id: uuid.UUID,
    key_id: uuid.UUID,
    caller: AuthenticatedMember = Depends(member_gate),
    svc: ApiKeyService = Depends(get_api_key_service),
):
    """Delete an API key. It stops authenticating immediately."""
    _require_owner(caller, member_id)
    return await svc.delete(member_id, key_id)

"""Pydantic schemas for the admin surface and public app config."""

import uuid
from datetime import datetime

from pydantic import BaseModel


class AppStats(BaseModel):
    guest_count: int
    registered_count: int
    admin_count: int
    verified_count: int
    api_key_count: int
    active_api_key_count: int


class RoleChange(BaseModel):
    member_id: uuid.UUID


class EventRead(BaseModel):
    id: int
    stream_id: str
    type: str
    data: dict
    meta: dict
    created_at: datetime

    model_config = {"from_attributes": True}


class AppConfig(BaseModel):
    """Settings the UI needs before anyone logs in."""
    allow_guests: bool
    allow_registration: bool
    allow_external_api: bool
    avatar_service: str
    cookie_name: str
    path_prefix: str
    version: str

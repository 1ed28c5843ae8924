"""Pydantic schemas for personal API keys."""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class ApiKeyCreate(BaseModel):
    name: str = Field(..., max_length=100)


class ApiKeyUpdate(BaseModel):
    active: bool


class ApiKeyCreated(BaseModel):
    """Response for API key creation — key is only shown ONCE."""
    id: uuid.UUID
    name: str
    key: str  # Full key — only returned on creation
    prefix: str
    active: bool
    created_at: datetime


class ApiKeyRead(BaseModel):
    """API key info (without the actual key)."""
    id: uuid.UUID
    member_id: uuid.UUID
    name: str
    prefix: str
    active: bool
    last_used_at: Optional[datetime] = None
    created_at: datetime

    model_config = {"from_attributes": True}

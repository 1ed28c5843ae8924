"""Pydantic schemas for members and account flows.

Request bodies are plain str fields. The account service validates them,
so a rule violation is a 400 ValidationError for HTTP and CLI callers alike.
"""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from muster.db.models import Role


# ─── Responses ──────────────────────────────────────────

class MemberRead(BaseModel):
    """Public view of a member. Never includes the password hash."""
    id: uuid.UUID
    name: str
    email: Optional[str] = None
    role: Role
    verified: bool
    avatar: str
    notifications_enabled: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class MessageResponse(BaseModel):
    message: str


# ─── Auth flows ─────────────────────────────────────────

class LoginRequest(BaseModel):
    email: str
    password: str


class RecruitRequest(BaseModel):
    name: str = ""


class EnlistRequest(BaseModel):
    name: str = ""
    email: str = ""
    password1: str = ""
    password2: str = ""


class ForgotPasswordRequest(BaseModel):
    email: str = ""


class ResetPasswordRequest(BaseModel):
    reset_id: str
    password1: str = ""
    password2: str = ""


class VerifyRequest(BaseModel):
    verify_id: str


class PasswordUpdate(BaseModel):
    password1: str = ""
    password2: str = ""


# ─── Profile ────────────────────────────────────────────

class ProfileUpdate(BaseModel):
    name: str
    avatar: str = Field(default="", max_length=64)
    notifications_enabled: bool = True

"""SQLAlchemy ORM models — single source of truth for the database schema.

Declarative ORM mapping with SQLAlchemy 2.0 style (Mapped[] + mapped_column).
Column types are the portable ones (Uuid, JSON with a JSONB variant) so the
same models run on PostgreSQL in production and SQLite under test.

Key concepts:
- UUID primary keys for members and API keys; the member id never changes
- Single-use tokens (verification, password reset) are rows that get
  deleted when consumed
- Events are an append-only audit log keyed by stream ("member:<id>")
"""

import enum
import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Uuid,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

JSONType = JSON().with_variant(JSONB(), "postgresql")


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_uuid() -> uuid.UUID:
    return uuid.uuid4()


class Role(str, enum.Enum):
    """Closed set of member roles.

    Roles are deliberately unordered: code asks concrete questions
    (is_admin, is_guest) rather than comparing ranks.
    """

    GUEST = "guest"
    REGISTERED = "registered"
    ADMIN = "admin"


# ══════════════════════════════════════════════════════════════
# Members
# ══════════════════════════════════════════════════════════════


class Member(Base):
    """An account. Guests have no email or password.

    Members are never hard-deleted; role and verification change in place.
    """

    __tablename__ = "members"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=new_uuid
    )
    name: Mapped[str] = mapped_column(String(64), nullable=False)
    email: Mapped[Optional[str]] = mapped_column(
        String(320), unique=True, nullable=True
    )
    password_hash: Mapped[Optional[str]] = mapped_column(
        String(255), nullable=True
    )  # null for guests
    role: Mapped[Role] = mapped_column(
        Enum(Role, native_enum=False, length=16,
             values_callable=lambda roles: [r.value for r in roles]),
        nullable=False,
        default=Role.GUEST,
    )
    verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    notifications_enabled: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True
    )
    avatar: Mapped[str] = mapped_column(String(64), nullable=False, default="")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )

    @property
    def is_guest(self) -> bool:
        return self.role == Role.GUEST

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


class AccountVerification(Base):
    """Single-use email verification token. Deleted when consumed."""

    __tablename__ = "account_verifications"
    __table_args__ = (Index("idx_account_verifications_member", "member_id"),)

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    member_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("members.id"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow
    )


class PasswordReset(Base):
    """Single-use password reset token. Deleted when consumed."""

    __tablename__ = "password_resets"
    __table_args__ = (Index("idx_password_resets_member", "member_id"),)

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    member_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("members.id"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow
    )


# ══════════════════════════════════════════════════════════════
# API keys
# ══════════════════════════════════════════════════════════════


class ApiKey(Base):
    """Personal API key, usable instead of a session cookie.

    The key itself is only shown once (on creation). We store its SHA-256
    hash and a short prefix so the owner can tell keys apart.
    """

    __tablename__ = "api_keys"
    __table_args__ = (
        Index("idx_api_keys_member", "member_id"),
        Index("idx_api_keys_hash", "key_hash", unique=True),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=new_uuid
    )
    member_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("members.id"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    key_hash: Mapped[str] = mapped_column(String(64), nullable=False)
    prefix: Mapped[str] = mapped_column(String(12), nullable=False)  # e.g. "mk_abc1234"
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    last_used_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow
    )


# ══════════════════════════════════════════════════════════════
# Audit log
# ══════════════════════════════════════════════════════════════


class Event(Base):
    """Immutable audit log of account lifecycle changes.

    stream_id examples: "member:<uuid>"
    type examples: "member.enlisted", "api_key.deleted"
    """

    __tablename__ = "events"
    __table_args__ = (
        Index("idx_events_stream", "stream_id", "id"),
        Index("idx_events_type", "type"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    stream_id: Mapped[str] = mapped_column(String(200), nullable=False)
    type: Mapped[str] = mapped_column(String(100), nullable=False)
    data: Mapped[dict] = mapped_column(JSONType, nullable=False)
    meta: Mapped[dict] = mapped_column(
        "metadata", JSONType, nullable=False, default=dict
    )  # actor_id
    # Note: Python attr is "meta" because "metadata" is reserved by SQLAlchemy.
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow
    )

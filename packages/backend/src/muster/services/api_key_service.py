"""API key service — personal keys for programmatic access.

A key is "mk_" + 32 random url-safe bytes. Only its SHA-256 hash and a
short display prefix are stored, so the full key can be shown exactly
once: in the response to generate(). Listing returns metadata only.

Every owner-scoped operation takes the owner id explicitly; the route
layer has already checked that the caller is that owner.
"""

import hashlib
import secrets
import uuid
from datetime import datetime, timezone

import structlog
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from muster.db.models import ApiKey
from muster.errors import NotFoundError, ValidationError
from muster.events.store import EventStore
from muster.events.types import (
    API_KEY_CREATED,
    API_KEY_DELETED,
    API_KEY_UPDATED,
    member_stream,
)

logger = structlog.get_logger()

KEY_PREFIX = "mk_"
DISPLAY_PREFIX_LEN = 10


def hash_key(raw_key: str) -> str:
    return hashlib.sha256(raw_key.encode("utf-8")).hexdigest()


class ApiKeyService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.events = EventStore(db)

    async def generate(self, owner_id: uuid.UUID, name: str) -> tuple[ApiKey, str]:
        """Create a key. Returns (record, raw key); the raw key is not kept."""
        name = name.strip()
        if not name:
            raise ValidationError("API key name is required")

        raw_key = f"{KEY_PREFIX}{secrets.token_urlsafe(32)}"
        api_key = ApiKey(
            member_id=owner_id,
            name=name,
            key_hash=hash_key(raw_key),
            prefix=raw_key[:DISPLAY_PREFIX_LEN],
            active=True,
        )
        self.db.add(api_key)
        await self.db.flush()

        await self.events.append(
            stream_id=member_stream(owner_id),
            event_type=API_KEY_CREATED,
            data={"api_key_id": str(api_key.id), "name": name, "prefix": api_key.prefix},
        )
        await self.db.commit()

        logger.info("api_key.created", member_id=str(owner_id), api_key_id=str(api_key.id))
        return api_key, raw_key

    async def list_keys(self, owner_id: uuid.UUID) -> list[ApiKey]:
        result = await self.db.execute(
            select(ApiKey)
            .where(ApiKey.member_id == owner_id)
            .order_by(ApiKey.created_at, ApiKey.name)
        )
        return list(result.scalars().all())

    async def set_active(
        self, owner_id: uuid.UUID, key_id: uuid.UUID, active: bool
    ) -> list[ApiKey]:
        """Toggle a key on or off. Returns the owner's keys afterwards."""
        result = await self.db.execute(
            select(ApiKey).where(ApiKey.id == key_id, ApiKey.member_id == owner_id)
        )
        api_key = result.scalars().first()
        if api_key is None:
            raise NotFoundError("API key not found")

        api_key.active = active
        await self.events.append(
            stream_id=member_stream(owner_id),
            event_type=API_KEY_UPDATED,
            data={"api_key_id": str(key_id), "active": active},
        )
        await self.db.commit()
        return await self.list_keys(owner_id)

    async def delete(self, owner_id: uuid.UUID, key_id: uuid.UUID) -> list[ApiKey]:
        """Remove a key for good. Returns the owner's remaining keys."""
        result = await self.db.execute(
            delete(ApiKey)
            .where(ApiKey.id == key_id, ApiKey.member_id == owner_id)
            .returning(ApiKey.id)
        )
        if result.scalar_one_or_none() is None:
            raise NotFoundError("API key not found")

        await self.events.append(
            stream_id=member_stream(owner_id),
            event_type=API_KEY_DELETED,
            data={"api_key_id": str(key_id)},
        )
        await self.db.commit()

        logger.info("api_key.deleted", member_id=str(owner_id), api_key_id=str(key_id))
        return await self.list_keys(owner_id)

    async def authenticate(self, raw_key: str) -> uuid.UUID | None:
        """Member id for an active key, or None. Records last use."""
        q = select(ApiKey).where(ApiKey.key_hash == hash_key(raw_key))
        result = await self.db.execute(q)
        api_key = result.scalars().first()

        if api_key is None or not api_key.active:
            return None

        api_key.last_used_at = datetime.now(timezone.utc)
        await self.db.commit()
        return api_key.member_id

"""Account service — member lifecycle.

Service layer separates business logic from HTTP routing: routes call
this, this calls the database. Covers:

- recruit_guest: session-only guest, no email or password
- enlist: registered member (or in-place upgrade of the calling guest),
  issues a verification token and sends the welcome email
- authenticate: email + password login (guests can never pass)
- verify / reset_password: consume single-use tokens exactly once
- forgot_password: same outcome whether or not the email is known
- update_password / update_profile: the caller's own account only
- promote / demote: admin role changes, idempotent

Single-use tokens are consumed with one DELETE ... RETURNING statement, so
two concurrent attempts cannot both succeed.
"""

import secrets
import uuid
from typing import Annotated, Optional

import structlog
from pydantic import BaseModel, EmailStr, Field, StringConstraints, model_validator
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from muster.auth.password import hash_password, verify_password
from muster.db.models import (
    AccountVerification,
    ApiKey,
    Event,
    Member,
    PasswordReset,
    Role,
)
from muster.errors import (
    AuthenticationError,
    AuthorizationError,
    NotFoundError,
    ValidationError,
)
from muster.events.store import EventStore
from muster.events.types import (
    MEMBER_DEMOTED,
    MEMBER_ENLISTED,
    MEMBER_PROFILE_UPDATED,
    MEMBER_PROMOTED,
    MEMBER_RECRUITED,
    MEMBER_UPGRADED,
    MEMBER_VERIFIED,
    PASSWORD_RESET,
    PASSWORD_RESET_REQUESTED,
    PASSWORD_UPDATED,
    member_stream,
)
from muster.services.email_service import EmailDispatcher

logger = structlog.get_logger()

MemberName = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=64)]
Password = Annotated[str, Field(min_length=6, max_length=72)]


# ─── Input rules ────────────────────────────────────────


class _PasswordForm(BaseModel):
    password1: Password
    password2: Password

    @model_validator(mode="after")
    def passwords_match(self):
        if self.password1 != self.password2:
            raise ValueError("Passwords do not match")
        return self


class _AccountForm(_PasswordForm):
    name: MemberName
    email: EmailStr


class _NameForm(BaseModel):
    name: MemberName


def _validated(form: type[BaseModel], **fields) -> BaseModel:
    """Run a form model, turning pydantic errors into a 400 ValidationError."""
    try:
        return form(**fields)
    except PydanticValidationError as e:
        first = e.errors()[0]
        where = ".".join(str(part) for part in first.get("loc", ()))
        message = first["msg"].removeprefix("Value error, ")
        raise ValidationError(f"{where}: {message}" if where else message)


def _new_token() -> str:
    return secrets.token_urlsafe(32)


def _normalize_email(email: str) -> str:
    return email.strip().lower()


class AccountService:
    """Business logic for member accounts."""

    def __init__(self, db: AsyncSession, email: EmailDispatcher):
        self.db = db
        self.email = email
        self.events = EventStore(db)

    # ─── Lookup ─────────────────────────────────────────

    async def get_member(self, member_id: uuid.UUID) -> Optional[Member]:
        return await self.db.get(Member, member_id)

    async def get_member_by_email(self, email: str) -> Optional[Member]:
        result = await self.db.execute(
            select(Member).where(Member.email == _normalize_email(email))
        )
        return result.scalars().first()

    async def get_profile(self, caller_id: uuid.UUID, target_id: uuid.UUID) -> Member:
        if caller_id != target_id:
            raise AuthorizationError("Members can only view their own profile")
        member = await self.get_member(target_id)
        if member is None:
            raise NotFoundError("Member not found")
        return member

    # ─── Creation ───────────────────────────────────────

    async def recruit_guest(self, name: str) -> Member:
        """Create a guest: name only, no email, no password, no verification."""
        form = _validated(_NameForm, name=name)

        member = Member(name=form.name, role=Role.GUEST)
        self.db.add(member)
        await self.db.flush()

        await self.events.append(
            stream_id=member_stream(member.id),
            event_type=MEMBER_RECRUITED,
            data={"name": member.name},
        )
        await self.db.commit()

        logger.info("account.recruited", member_id=str(member.id))
        return member

    async def enlist(
        self,
        name: str,
        email: str,
        password1: str,
        password2: str,
        active_member_id: Optional[uuid.UUID] = None,
    ) -> Member:
        """Register a member and send the welcome/verification email.

        When active_member_id names a guest (the caller's current session),
        that guest is upgraded in place and keeps its id.
        """
        form = _validated(
            _AccountForm,
            name=name,
            email=email,
            password1=password1,
            password2=password2,
        )
        address = _normalize_email(form.email)

        if await self.get_member_by_email(address) is not None:
            raise ValidationError("An account with this email already exists")

        guest = None
        if active_member_id is not None:
            candidate = await self.get_member(active_member_id)
            if candidate is not None and candidate.is_guest:
                guest = candidate

        if guest is not None:
            member = guest
            member.name = form.name
            member.email = address
            member.password_hash = hash_password(form.password1)
            member.role = Role.REGISTERED
            event_type = MEMBER_UPGRADED
        else:
            member = Member(
                name=form.name,
                email=address,
                password_hash=hash_password(form.password1),
                role=Role.REGISTERED,
                verified=False,
            )
            self.db.add(member)
            event_type = MEMBER_ENLISTED

        try:
            await self.db.flush()
            verification = AccountVerification(id=_new_token(), member_id=member.id)
            self.db.add(verification)
            await self.events.append(
                stream_id=member_stream(member.id),
                event_type=event_type,
                data={"name": member.name, "email": address},
            )
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise ValidationError("An account with this email already exists")

        logger.info("account.enlisted", member_id=str(member.id), upgraded=guest is not None)
        await self.email.send_welcome(member.name, address, verification.id)
        return member

    # ─── Login ──────────────────────────────────────────

    async def authenticate(self, email: str, password: str) -> Member:
        """Email + password login. Same error for every kind of miss."""
        member = await self.get_member_by_email(email) if email else None
        if member is None or not verify_password(password, member.password_hash):
            raise AuthenticationError("Invalid credentials")
        return member

    # ─── Verification ───────────────────────────────────

    async def verify(self, verify_id: str) -> Member:
        """Consume a verification token and mark its member verified."""
        result = await self.db.execute(
            delete(AccountVerification)
            .where(AccountVerification.id == verify_id)
            .returning(AccountVerification.member_id)
        )
        member_id = result.scalar_one_or_none()
        if member_id is None:
            raise NotFoundError("Verification link is invalid or has already been used")

        member = await self.get_member(member_id)
        member.verified = True
        await self.events.append(
            stream_id=member_stream(member_id),
            event_type=MEMBER_VERIFIED,
            data={},
        )
        await self.db.commit()

        logger.info("account.verified", member_id=str(member_id))
        return member

    # ─── Passwords ──────────────────────────────────────

    async def forgot_password(self, email: str) -> None:
        """Issue a reset token and email it if the address is registered.

        Returns nothing in either case so callers cannot tell the difference.
        """
        member = await self.get_member_by_email(email) if email else None
        if member is None or member.is_guest:
            logger.info("account.reset_requested_unknown")
            return

        reset = PasswordReset(id=_new_token(), member_id=member.id)
        self.db.add(reset)
        await self.events.append(
            stream_id=member_stream(member.id),
            event_type=PASSWORD_RESET_REQUESTED,
            data={},
        )
        await self.db.commit()

        await self.email.send_forgot_password(member.name, member.email, reset.id)

    async def reset_password(self, reset_id: str, password1: str, password2: str) -> Member:
        """Consume a reset token and set a new password.

        Password rules are checked before the token is touched, so a typo
        in the confirmation leaves the link usable.
        """
        form = _validated(_PasswordForm, password1=password1, password2=password2)

        result = await self.db.execute(
            delete(PasswordReset)
            .where(PasswordReset.id == reset_id)
            .returning(PasswordReset.member_id)
        )
        member_id = result.scalar_one_or_none()
        if member_id is None:
            raise NotFoundError("Reset link is invalid or has already been used")

        member = await self.get_member(member_id)
        member.password_hash = hash_password(form.password1)
        await self.events.append(
            stream_id=member_stream(member_id),
            event_type=PASSWORD_RESET,
            data={},
        )
        await self.db.commit()

        logger.info("account.password_reset", member_id=str(member_id))
        await self.email.send_password_reset(member.name, member.email)
        return member

    async def update_password(
        self, member_id: uuid.UUID, password1: str, password2: str
    ) -> Member:
        """Set a new password for an already-authenticated member.

        The current password is not asked for again.
        """
        form = _validated(_PasswordForm, password1=password1, password2=password2)

        member = await self.get_member(member_id)
        if member is None:
            raise NotFoundError("Member not found")
        if member.is_guest:
            raise ValidationError("Guests must enlist before setting a password")

        member.password_hash = hash_password(form.password1)
        await self.events.append(
            stream_id=member_stream(member_id),
            event_type=PASSWORD_UPDATED,
            data={},
        )
        await self.db.commit()

        logger.info("account.password_updated", member_id=str(member_id))
        await self.email.send_password_update(member.name, member.email)
        return member

    # ─── Profile ────────────────────────────────────────

    async def update_profile(
        self,
        caller_id: uuid.UUID,
        target_id: uuid.UUID,
        name: str,
        avatar: str,
        notifications_enabled: bool,
    ) -> Member:
        if caller_id != target_id:
            raise AuthorizationError("Members can only update their own profile")
        form = _validated(_NameForm, name=name)

        member = await self.get_member(target_id)
        if member is None:
            raise NotFoundError("Member not found")

        member.name = form.name
        member.avatar = avatar
        member.notifications_enabled = notifications_enabled
        await self.events.append(
            stream_id=member_stream(target_id),
            event_type=MEMBER_PROFILE_UPDATED,
            data={
                "name": member.name,
                "avatar": avatar,
                "notifications_enabled": notifications_enabled,
            },
        )
        await self.db.commit()
        return member

    # ─── Roles ──────────────────────────────────────────

    async def promote(
        self, member_id: uuid.UUID, actor_id: Optional[uuid.UUID] = None
    ) -> Member:
        """Make a registered member an admin. No-op for admins."""
        member = await self.get_member(member_id)
        if member is None:
            raise NotFoundError("Member not found")
        if member.is_guest:
            raise ValidationError("Guests must enlist before they can be promoted")
        if member.role == Role.ADMIN:
            return member

        member.role = Role.ADMIN
        await self.events.append(
            stream_id=member_stream(member_id),
            event_type=MEMBER_PROMOTED,
            data={"role": Role.ADMIN.value},
            metadata={"actor_id": str(actor_id)} if actor_id else None,
        )
        await self.db.commit()

        logger.info("account.promoted", member_id=str(member_id))
        return member

    async def demote(
        self, member_id: uuid.UUID, actor_id: Optional[uuid.UUID] = None
    ) -> Member:
        """Return an admin to registered. No-op for everyone else."""
        member = await self.get_member(member_id)
        if member is None:
            raise NotFoundError("Member not found")
        if member.role != Role.ADMIN:
            return member

        member.role = Role.REGISTERED
        await self.events.append(
            stream_id=member_stream(member_id),
            event_type=MEMBER_DEMOTED,
            data={"role": Role.REGISTERED.value},
            metadata={"actor_id": str(actor_id)} if actor_id else None,
        )
        await self.db.commit()

        logger.info("account.demoted", member_id=str(member_id))
        return member

    # ─── Admin views ────────────────────────────────────

    async def list_registered(self, limit: int = 20, offset: int = 0) -> list[Member]:
        result = await self.db.execute(
            select(Member)
            .where(Member.role.in_([Role.REGISTERED, Role.ADMIN]))
            .order_by(Member.created_at, Member.name)
            .limit(limit)
            .offset(offset)
        )
        return list(result.scalars().all())

    async def app_stats(self) -> dict:
        async def count(q) -> int:
            return (await self.db.execute(q)).scalar_one()

        by_role = select(func.count()).select_from(Member)
        keys = select(func.count()).select_from(ApiKey)
        return {
            "guest_count": await count(by_role.where(Member.role == Role.GUEST)),
            "registered_count": await count(by_role.where(Member.role == Role.REGISTERED)),
            "admin_count": await count(by_role.where(Member.role == Role.ADMIN)),
            "verified_count": await count(by_role.where(Member.verified.is_(True))),
            "api_key_count": await count(keys),
            "active_api_key_count": await count(keys.where(ApiKey.active.is_(True))),
        }

    async def member_events(self, member_id: uuid.UUID, limit: int = 100) -> list[Event]:
        if await self.get_member(member_id) is None:
            raise NotFoundError("Member not found")
        return await self.events.read_stream(member_stream(member_id), limit=limit)

"""Auth API — sessions and account lifecycle.

- POST /auth/login → email/password → member + session cookies
- POST /auth/logout → clear session cookies
- POST /auth/recruit → guest member + session cookies (allow_guests)
- POST /auth/enlist → registered member + session cookies (allow_registration)
- POST /auth/forgot-password → always the same 200
- POST /auth/reset-password → consume reset token, set password
- POST /auth/verify → consume verification token
- GET /auth/me → current member
- POST /auth/update-password → new password for the current member
"""

from fastapi import APIRouter, Depends, Request, Response

from muster.api.deps import get_account_service, get_session_cookies
from muster.auth.cookies import SessionCookieCodec, SessionCookies
from muster.auth.dependencies import AuthenticatedMember, member_gate
from muster.auth.resolver import SessionCookieCredential
from muster.config import Settings, get_settings
from muster.errors import ValidationError
from muster.schemas.member import (
    EnlistRequest,
    ForgotPasswordRequest,
    LoginRequest,
    MemberRead,
    MessageResponse,
    PasswordUpdate,
    RecruitRequest,
    ResetPasswordRequest,
    VerifyRequest,
)
from muster.services.account_service import AccountService

router = APIRouter(prefix="/auth")

FORGOT_PASSWORD_MESSAGE = (
    "If that email belongs to an account, a password reset link is on its way."
)


# ─── Sessions ────────────────────────────────────────────


@router.post("/login", response_model=MemberRead)
async def login(
    body: LoginRequest,
    response: Response,
    svc: AccountService = Depends(get_account_service),
    cookies: SessionCookies = Depends(get_session_cookies),
):
    """Login with email and password → session cookies."""
    member = await svc.authenticate(body.email, body.password)
    cookies.issue(response, member)
    return member


@router.post("/logout", response_model=MessageResponse)
async def logout(
    response: Response,
    cookies: SessionCookies = Depends(get_session_cookies),
):
    cookies.clear(response)
    return {"message": "Logged out"}


# ─── Registration ────────────────────────────────────────


@router.post("/recruit", response_model=MemberRead, status_code=201)
async def recruit(
    body: RecruitRequest,
    response: Response,
    settings: Settings = Depends(get_settings),
    svc: AccountService = Depends(get_account_service),
    cookies: SessionCookies = Depends(get_session_cookies),
):
    """Create a guest member (name only)."""
    if not settings.allow_guests:
        raise ValidationError("Guest accounts are disabled")
    member = await svc.recruit_guest(body.name)
    cookies.issue(response, member)
    return member


@router.post("/enlist", response_model=MemberRead, status_code=201)
async def enlist(
    body: EnlistRequest,
    request: Request,
    response: Response,
    settings: Settings = Depends(get_settings),
    svc: AccountService = Depends(get_account_service),
    cookies: SessionCookies = Depends(get_session_cookies),
):
    """Register a member. A guest enlisting from its session keeps its id."""
    if not settings.allow_registration:
        raise ValidationError("Registration is disabled")

    active_member_id = SessionCookieCredential(
        SessionCookieCodec.from_settings(settings)
    ).peek(request)

    member = await svc.enlist(
        body.name,
        body.email,
        body.password1,
        body.password2,
        active_member_id=active_member_id,
    )
    cookies.issue(response, member)
    return member


# ─── Recovery + verification ─────────────────────────────


@router.post("/forgot-password", response_model=MessageResponse)
async def forgot_password(
    body: ForgotPasswordRequest,
    svc: AccountService = Depends(get_account_service),
):
    """Request a reset link. The response never reveals whether the email exists."""
    await svc.forgot_password(body.email)
    return {"message": FORGOT_PASSWORD_MESSAGE}


@router.post("/reset-password", response_model=MessageResponse)
async def reset_password(
    body: ResetPasswordRequest,
    svc: AccountService = Depends(get_account_service),
):
    await svc.reset_password(body.reset_id, body.password1, body.password2)
    return {"message": "Password reset"}


@router.post("/verify", response_model=MessageResponse)
async def verify_account(
    body: VerifyRequest,
    svc: AccountService = Depends(get_account_service),
):
    await svc.verify(body.verify_id)
    return {"message": "Account verified"}


# ─── Current member ──────────────────────────────────────


@router.get("/me", response_model=MemberRead)
async def get_me(
    caller: AuthenticatedMember = Depends(member_gate),
    svc: AccountService = Depends(get_account_service),
):
    """Get the current authenticated member."""
    return await svc.get_profile(caller.member_id, caller.member_id)


@router.post("/update-password", response_model=MessageResponse)
async def update_password(
    body: PasswordUpdate,
    caller: AuthenticatedMember = Depends(member_gate),
    svc: AccountService = Depends(get_account_service),
):
    await svc.update_password(caller.member_id, body.password1, body.password2)
    return {"message": "Password updated"}

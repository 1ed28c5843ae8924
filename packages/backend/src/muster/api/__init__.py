"""API route aggregation.

All routers registered here get mounted in main.py.

Admin routes are protected at the include_router level using FastAPI's
dependencies parameter. Member routes declare member_gate per handler
because they need the caller's identity. Health, config, avatars and the
auth flows are open.
"""

from fastapi import APIRouter, Depends

from muster.api.admin import router as admin_router
from muster.api.auth import router as auth_router
from muster.api.avatars import router as avatars_router
from muster.api.health import router as health_router
from muster.api.members import router as members_router
from muster.auth.dependencies import admin_gate

api_router = APIRouter(prefix="/api/v1")

# Open routes — no auth required
api_router.include_router(health_router, tags=["health"])
api_router.include_router(auth_router, tags=["auth"])
api_router.include_router(avatars_router, tags=["avatars"])

# Member routes — member_gate on each handler
api_router.include_router(members_router, tags=["members", "api-keys"])

# Admin routes — admin_gate on every handler
api_router.include_router(admin_router, tags=["admin"], dependencies=[Depends(admin_gate)])

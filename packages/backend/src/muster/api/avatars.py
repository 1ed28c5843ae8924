"""Avatar images.

GET /avatars/{width}/{member_id}[/{gender}] → PNG. Open to everyone: the
image is derived from the id alone and reveals nothing about the member.
Rendering is CPU-bound, so this is a plain def route (run in the
threadpool by FastAPI).
"""

from typing import Optional

from fastapi import APIRouter, Depends, Path, Response

from muster.api.deps import get_avatar_provisioner
from muster.services.avatar_service import MALE, AvatarProvisioner

router = APIRouter(prefix="/avatars")


@router.get("/{width}/{member_id}")
@router.get("/{width}/{member_id}/{gender}")
def avatar(
    member_id: str,
    width: int = Path(..., ge=16, le=1024),
    gender: str = MALE,
    provider: Optional[str] = None,
    provisioner: AvatarProvisioner = Depends(get_avatar_provisioner),
):
    """Render the member's avatar; provider defaults to MUSTER_AVATAR_SERVICE."""
    content = provisioner.render(member_id, gender, provider=provider, width=width)
    return Response(
        content=content,
        media_type="image/png",
        headers={"Cache-Control": "public, max-age=86400"},
    )

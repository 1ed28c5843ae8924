"""Avatar rendering tests."""

import io
import uuid

import pytest
from PIL import Image

from muster.errors import ValidationError
from muster.services.avatar_service import (
    FEMALE,
    GEOMETRIC,
    MALE,
    PORTRAIT,
    AvatarProvisioner,
)

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"
MEMBER_ID = "5b0c1c38-6d8e-4d8b-9b7b-0c2f7f3a9e11"


def _size(png: bytes) -> tuple[int, int]:
    return Image.open(io.BytesIO(png)).size


@pytest.mark.parametrize("provider", [GEOMETRIC, PORTRAIT])
def test_render_is_deterministic(provider):
    provisioner = AvatarProvisioner()
    first = provisioner.render(MEMBER_ID, provider=provider)
    second = AvatarProvisioner().render(MEMBER_ID, provider=provider)
    assert first == second
    assert first.startswith(PNG_SIGNATURE)


def test_different_members_differ():
    provisioner = AvatarProvisioner(PORTRAIT)
    assert provisioner.render(MEMBER_ID) != provisioner.render(str(uuid.uuid4()))


def test_portrait_gender_changes_image():
    provisioner = AvatarProvisioner(PORTRAIT)
    assert provisioner.render(MEMBER_ID, MALE) != provisioner.render(MEMBER_ID, FEMALE)


def test_unknown_gender_renders_as_default():
    provisioner = AvatarProvisioner(PORTRAIT)
    assert provisioner.render(MEMBER_ID, "other") == provisioner.render(MEMBER_ID, MALE)


@pytest.mark.parametrize("width", [16, 64, 240, 1024])
def test_render_width(width):
    assert _size(AvatarProvisioner().render(MEMBER_ID, width=width)) == (width, width)


@pytest.mark.parametrize("width", [0, 15, 1025])
def test_render_width_out_of_range(width):
    with pytest.raises(ValidationError):
        AvatarProvisioner().render(MEMBER_ID, width=width)


def test_unknown_provider():
    with pytest.raises(ValidationError):
        AvatarProvisioner().render(MEMBER_ID, provider="robohash")
    with pytest.raises(ValueError):
        AvatarProvisioner("robohash")


# ─── HTTP ───────────────────────────────────────────────


@pytest.mark.asyncio
async def test_avatar_route_returns_png(client):
    r = await client.get(f"/api/v1/avatars/64/{MEMBER_ID}")
    assert r.status_code == 200
    assert r.headers["content-type"] == "image/png"
    assert "public" in r.headers["cache-control"]
    assert _size(r.content) == (64, 64)
    assert r.content == AvatarProvisioner().render(MEMBER_ID, width=64)


@pytest.mark.asyncio
async def test_avatar_route_gender_and_provider(client):
    r = await client.get(f"/api/v1/avatars/120/{MEMBER_ID}/female?provider=portrait")
    assert r.status_code == 200
    assert r.content == AvatarProvisioner().render(
        MEMBER_ID, FEMALE, provider=PORTRAIT, width=120
    )


@pytest.mark.asyncio
async def test_avatar_route_rejects_bad_input(client):
    assert (await client.get(f"/api/v1/avatars/2000/{MEMBER_ID}")).status_code == 422
    r = await client.get(f"/api/v1/avatars/64/{MEMBER_ID}?provider=robohash")
    assert r.status_code == 400

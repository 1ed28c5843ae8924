"""Avatar images derived from a member id.

render() is a pure function of its inputs: every random choice comes from
a random.Random seeded with SHA-256 of the member id (and the gender for
portraits), Pillow drawing is deterministic, and PNG encoding adds no
timestamps. Same inputs, byte-identical PNG.

Providers:
- geometric: a mirrored 5x5 block pattern on a tinted background
- portrait: a simple drawn face; gender picks the hair style
"""

import hashlib
import io
import random

from PIL import Image, ImageDraw

from muster.errors import InternalError, ValidationError

BASE_SIZE = 240
MIN_WIDTH = 16
MAX_WIDTH = 1024

GEOMETRIC = "geometric"
PORTRAIT = "portrait"
PROVIDERS = (GEOMETRIC, PORTRAIT)

MALE = "male"
FEMALE = "female"

SKIN_TONES = [(255, 224, 189), (241, 194, 125), (224, 172, 105), (198, 134, 66), (141, 85, 36)]
HAIR_COLORS = [(44, 34, 43), (113, 99, 90), (183, 166, 158), (214, 196, 194), (165, 42, 42), (59, 48, 36)]
BACKGROUNDS = [(187, 222, 251), (200, 230, 201), (255, 236, 179), (248, 187, 208), (209, 196, 233)]
SHIRT_COLORS = [(63, 81, 181), (0, 150, 136), (244, 67, 54), (96, 125, 139), (255, 152, 0)]


def _rng(*parts: str) -> random.Random:
    digest = hashlib.sha256("\x00".join(parts).encode("utf-8")).digest()
    return random.Random(int.from_bytes(digest[:16], "big"))


def _geometric(member_id: str) -> Image.Image:
    rng = _rng(GEOMETRIC, member_id)
    hue = rng.randrange(40, 216), rng.randrange(40, 216), rng.randrange(40, 216)
    background = tuple(255 - (255 - c) // 6 for c in hue)

    image = Image.new("RGB", (BASE_SIZE, BASE_SIZE), background)
    draw = ImageDraw.Draw(image)
    cells, margin = 5, BASE_SIZE // 10
    cell = (BASE_SIZE - 2 * margin) // cells
    for row in range(cells):
        for col in range((cells + 1) // 2):
            if rng.random() < 0.5:
                continue
            for c in {col, cells - 1 - col}:
                x, y = margin + c * cell, margin + row * cell
                draw.rectangle([x, y, x + cell - 1, y + cell - 1], fill=hue)
    return image


def _portrait(member_id: str, gender: str) -> Image.Image:
    rng = _rng(PORTRAIT, gender, member_id)
    skin = rng.choice(SKIN_TONES)
    hair = rng.choice(HAIR_COLORS)

    image = Image.new("RGB", (BASE_SIZE, BASE_SIZE), rng.choice(BACKGROUNDS))
    draw = ImageDraw.Draw(image)
    s = BASE_SIZE

    if gender == FEMALE:
        # long hair falls behind the shoulders
        draw.rounded_rectangle([s * 0.22, s * 0.18, s * 0.78, s * 0.78], radius=s // 8, fill=hair)

    draw.ellipse([s * 0.12, s * 0.78, s * 0.88, s * 1.3], fill=rng.choice(SHIRT_COLORS))
    draw.rectangle([s * 0.43, s * 0.62, s * 0.57, s * 0.82], fill=skin)
    draw.ellipse([s * 0.3, s * 0.22, s * 0.7, s * 0.7], fill=skin)

    if gender == FEMALE:
        draw.pieslice([s * 0.27, s * 0.15, s * 0.73, s * 0.55], 180, 360, fill=hair)
    else:
        top = s * (0.17 + rng.random() * 0.04)
        draw.chord([s * 0.28, top, s * 0.72, s * 0.5], 180, 360, fill=hair)
        if rng.random() < 0.35:
            draw.chord([s * 0.32, s * 0.5, s * 0.68, s * 0.74], 0, 180, fill=hair)

    eye_y = s * (0.42 + rng.random() * 0.03)
    for eye_x in (s * 0.41, s * 0.59):
        draw.ellipse([eye_x - 6, eye_y - 6, eye_x + 6, eye_y + 6], fill=(255, 255, 255))
        draw.ellipse([eye_x - 3, eye_y - 3, eye_x + 3, eye_y + 3], fill=(40, 40, 40))

    mouth_w = s * (0.08 + rng.random() * 0.06)
    draw.arc(
        [s * 0.5 - mouth_w, s * 0.5, s * 0.5 + mouth_w, s * 0.62],
        20, 160, fill=(150, 60, 60), width=3,
    )
    return image


class AvatarProvisioner:
    """Deterministic avatar PNGs keyed by member id."""

    def __init__(self, default_provider: str = GEOMETRIC):
        if default_provider not in PROVIDERS:
            raise ValueError(f"unknown avatar provider: {default_provider}")
        self.default_provider = default_provider

    def render(
        self,
        member_id: str,
        gender: str = MALE,
        provider: str | None = None,
        width: int = BASE_SIZE,
    ) -> bytes:
        provider = provider or self.default_provider
        if provider not in PROVIDERS:
            raise ValidationError(f"Unknown avatar provider: {provider}")
        if not MIN_WIDTH <= width <= MAX_WIDTH:
            raise ValidationError(f"Avatar width must be between {MIN_WIDTH} and {MAX_WIDTH}")
        gender = FEMALE if gender == FEMALE else MALE

        if provider == GEOMETRIC:
            image = _geometric(member_id)
        else:
            image = _portrait(member_id, gender)

        image = image.resize((width, width), Image.Resampling.BILINEAR)
        buffer = io.BytesIO()
        try:
            image.save(buffer, format="PNG")
        except OSError as e:
            raise InternalError(f"unable to encode avatar: {e}") from e
        return buffer.getvalue()

"""Dry-run image gateway (offline)."""

from __future__ import annotations

import asyncio
import hashlib
import io

from PIL import Image, ImageDraw, ImageFont

from ..codec import EncodedImage
from ..errors import CodecError
from .google_utils import normalize_aspect_ratio, ratio_dimensions


class DryRunGateway:
    name = "dryrun"

    def __init__(self, long_side: int = 512) -> None:
        self.long_side = long_side
        self.calls: list[tuple[str, str]] = []

    async def generate(self, prompt: str, aspect_ratio: str) -> EncodedImage:
        self.calls.append(("generate", prompt))
        size = ratio_dimensions(normalize_aspect_ratio(aspect_ratio), self.long_side)
        return await asyncio.to_thread(_render, prompt, size)

    async def edit(self, source: EncodedImage, instruction: str) -> EncodedImage:
        self.calls.append(("edit", instruction))
        size = await asyncio.to_thread(_source_size, source)
        return await asyncio.to_thread(_render, instruction, size)


def _source_size(source: EncodedImage) -> tuple[int, int]:
    try:
        with Image.open(io.BytesIO(source.to_bytes())) as img:
            return img.size
    except (OSError, ValueError) as exc:
        raise CodecError(f"Could not read source image: {exc}") from exc


def _render(text: str, size: tuple[int, int]) -> EncodedImage:
    image = Image.new("RGB", size, _color_from_prompt(text))
    draw = ImageDraw.Draw(image)
    draw.text((20, 20), f"dryrun\n{text[:60]}", fill=(255, 255, 255), font=ImageFont.load_default())
    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return EncodedImage.from_bytes(buffer.getvalue(), "image/png")


def _color_from_prompt(prompt: str) -> tuple[int, int, int]:
    digest = hashlib.sha256(prompt.encode("utf-8")).digest()
    return digest[0], digest[1], digest[2]

"""Image transport encoding and history thumbnails."""

from __future__ import annotations

import asyncio
import base64
import binascii
import io
from dataclasses import dataclass
from pathlib import Path

from PIL import Image, UnidentifiedImageError

from .errors import CodecError


ACCEPTED_UPLOAD_TYPES = ("image/png", "image/jpeg", "image/webp")
MAX_UPLOAD_BYTES = 4 * 1024 * 1024
THUMBNAIL_MAX_DIMENSION = 128
THUMBNAIL_QUALITY = 80
THUMBNAIL_MIME_TYPE = "image/jpeg"


@dataclass(frozen=True)
class EncodedImage:
    """Base64 payload plus its declared media type."""

    data: str
    mime_type: str

    @classmethod
    def from_bytes(cls, raw: bytes, mime_type: str) -> "EncodedImage":
        return cls(data=base64.b64encode(bytes(raw)).decode("ascii"), mime_type=mime_type)

    @classmethod
    def from_data_url(cls, url: str) -> "EncodedImage":
        header, sep, payload = str(url or "").partition(",")
        if not sep or not header.startswith("data:") or not header.endswith(";base64"):
            raise CodecError("Malformed image data URL.")
        mime_type = header[len("data:") : -len(";base64")]
        if not mime_type or not payload:
            raise CodecError("Malformed image data URL.")
        return cls(data=payload, mime_type=mime_type)

    def to_bytes(self) -> bytes:
        try:
            return base64.b64decode(self.data, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise CodecError(f"Image payload is not valid base64: {exc}") from exc

    def to_data_url(self) -> str:
        return f"data:{self.mime_type};base64,{self.data}"


def mime_type_for_suffix(suffix: str) -> str | None:
    lowered = str(suffix or "").strip().lower()
    if lowered == ".png":
        return "image/png"
    if lowered in {".jpg", ".jpeg"}:
        return "image/jpeg"
    if lowered == ".webp":
        return "image/webp"
    return None


def is_accepted_upload(mime_type: str | None) -> bool:
    return str(mime_type or "").strip().lower() in ACCEPTED_UPLOAD_TYPES


def encode_upload(raw: bytes, mime_type: str) -> EncodedImage:
    """Wrap uploaded bytes in the transport encoding; the media type is not checked."""
    return EncodedImage.from_bytes(raw, mime_type)


async def read_upload(path: Path | str, mime_type: str | None = None) -> EncodedImage:
    source = Path(path).expanduser()
    declared = mime_type or mime_type_for_suffix(source.suffix) or "application/octet-stream"
    try:
        raw = await asyncio.to_thread(source.read_bytes)
    except OSError as exc:
        raise CodecError(f"Could not read image {source}: {exc}") from exc
    return encode_upload(raw, declared)


def thumbnail_size(width: int, height: int, max_dimension: int) -> tuple[int, int]:
    """Scale (width, height) so the longer side equals ``max_dimension``."""
    if width <= 0 or height <= 0:
        raise CodecError(f"Invalid image dimensions {width}x{height}.")
    limit = max(1, int(max_dimension))
    if width >= height:
        return limit, max(1, int(round(height * (limit / width))))
    return max(1, int(round(width * (limit / height)))), limit


def render_thumbnail(image: EncodedImage, max_dimension: int = THUMBNAIL_MAX_DIMENSION) -> str:
    raw = image.to_bytes()
    try:
        with Image.open(io.BytesIO(raw)) as img:
            img.load()
            rgb = img.convert("RGB")
    except (UnidentifiedImageError, OSError, ValueError) as exc:
        raise CodecError(f"Could not decode image for thumbnail: {exc}") from exc
    size = thumbnail_size(rgb.width, rgb.height, max_dimension)
    resized = rgb.resize(size, Image.LANCZOS)
    buffer = io.BytesIO()
    resized.save(buffer, format="JPEG", quality=THUMBNAIL_QUALITY)
    return EncodedImage.from_bytes(buffer.getvalue(), THUMBNAIL_MIME_TYPE).to_data_url()


async def make_thumbnail(image: EncodedImage, max_dimension: int = THUMBNAIL_MAX_DIMENSION) -> str:
    return await asyncio.to_thread(render_thumbnail, image, max_dimension)

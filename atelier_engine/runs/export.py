"""Save results under a name derived from their prompt."""

from __future__ import annotations

import re
from pathlib import Path

from ..codec import EncodedImage
from ..utils import ensure_dir, now_ms


EXPORT_EXTENSION = ".jpg"
EXPORT_STEM_LIMIT = 50

_DISALLOWED_RE = re.compile(r"[^a-z0-9\s]")
_WHITESPACE_RE = re.compile(r"\s+")


def prompt_slug(prompt: str | None) -> str:
    lowered = str(prompt or "").lower()
    stripped = _DISALLOWED_RE.sub("", lowered)
    return _WHITESPACE_RE.sub("-", stripped)[:EXPORT_STEM_LIMIT]


def suggest_filename(prompt: str | None, now: int | None = None, extension: str = EXPORT_EXTENSION) -> str:
    slug = prompt_slug(prompt)
    if slug:
        return f"{slug}{extension}"
    stamp = now if now is not None else now_ms()
    return f"atelier-image-{stamp}{extension}"


def export_image(image: EncodedImage, out_dir: Path, prompt: str | None) -> Path:
    ensure_dir(out_dir)
    out_path = out_dir / suggest_filename(prompt)
    out_path.write_bytes(image.to_bytes())
    return out_path

"""Shared helpers for Google image gateways."""

from __future__ import annotations

import re
from typing import Optional, Tuple

from ..catalog import ASPECT_RATIOS, DEFAULT_ASPECT_RATIO


_RATIO_RE = re.compile(r"^\s*(\d+)\s*[:/]\s*(\d+)\s*$")


def parse_ratio(value: str | None) -> Optional[Tuple[int, int]]:
    if not value:
        return None
    match = _RATIO_RE.match(value)
    if not match:
        return None
    w = int(match.group(1))
    h = int(match.group(2))
    if w <= 0 or h <= 0:
        return None
    return w, h


def normalize_aspect_ratio(value: str | None, warnings: list[str] | None = None) -> str:
    """Return a supported ratio, snapping unknown ones to the nearest entry."""
    raw = str(value or "").strip().replace("/", ":")
    if raw in ASPECT_RATIOS:
        return raw
    ratio = parse_ratio(raw)
    if ratio is None:
        if warnings is not None and raw:
            warnings.append(f"Aspect ratio '{value}' unsupported; using {DEFAULT_ASPECT_RATIO}.")
        return DEFAULT_ASPECT_RATIO
    target = ratio[0] / ratio[1]
    best_key = DEFAULT_ASPECT_RATIO
    best_delta = float("inf")
    for key in ASPECT_RATIOS:
        a, b = parse_ratio(key) or (1, 1)
        delta = abs(a / b - target)
        if delta < best_delta:
            best_key = key
            best_delta = delta
    if warnings is not None:
        warnings.append(f"Aspect ratio snapped to {best_key}.")
    return best_key


def ratio_dimensions(aspect_ratio: str, long_side: int = 1024) -> tuple[int, int]:
    w, h = parse_ratio(aspect_ratio) or (1, 1)
    if w >= h:
        return long_side, max(1, int(round(long_side * h / w)))
    return max(1, int(round(long_side * w / h))), long_side

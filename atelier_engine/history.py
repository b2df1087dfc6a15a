"""Recency-bounded generation history persisted as a JSON array."""

from __future__ import annotations

import json
import logging
import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Sequence

from .codec import THUMBNAIL_MAX_DIMENSION, EncodedImage, make_thumbnail
from .utils import now_ms


logger = logging.getLogger(__name__)

HISTORY_CAPACITY = 5
HISTORY_STORAGE_KEY = "atelier-image-history"
DEFAULT_HISTORY_PATH = Path.home() / ".atelier" / f"{HISTORY_STORAGE_KEY}.json"


@dataclass(frozen=True)
class HistoryItem:
    id: str
    prompt: str
    image_url: str
    timestamp: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "prompt": self.prompt,
            "imageUrl": self.image_url,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, payload: Any) -> "HistoryItem":
        if not isinstance(payload, dict):
            raise ValueError("history entry must be an object")
        item_id = payload.get("id")
        prompt = payload.get("prompt")
        image_url = payload.get("imageUrl")
        timestamp = payload.get("timestamp")
        if not isinstance(item_id, str) or not isinstance(prompt, str) or not isinstance(image_url, str):
            raise ValueError("history entry has missing or invalid text fields")
        if isinstance(timestamp, bool) or not isinstance(timestamp, (int, float)):
            raise ValueError("history entry has an invalid timestamp")
        if not math.isfinite(timestamp):
            raise ValueError("history entry has an invalid timestamp")
        return cls(id=item_id, prompt=prompt, image_url=image_url, timestamp=int(timestamp))


@dataclass
class HistoryStore:
    path: Path = DEFAULT_HISTORY_PATH
    capacity: int = HISTORY_CAPACITY
    thumbnail_size: int = THUMBNAIL_MAX_DIMENSION
    _items: list[HistoryItem] = field(default_factory=list, init=False, repr=False)

    @property
    def items(self) -> list[HistoryItem]:
        return list(self._items)

    def load(self) -> list[HistoryItem]:
        """Read persisted history; anything unreadable counts as no history."""
        self._items = self._read()
        return self.items

    def insert(self, item: HistoryItem) -> list[HistoryItem]:
        self._items = [item, *self._items][: self.capacity]
        self.persist(self._items)
        return self.items

    def clear(self) -> None:
        self._items = []
        self.persist(self._items)

    def persist(self, items: Sequence[HistoryItem]) -> bool:
        try:
            payload = json.dumps([item.to_dict() for item in items])
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(payload, encoding="utf-8")
        except (OSError, TypeError, ValueError) as exc:
            logger.warning("Failed to save history to %s: %s", self.path, exc)
            return False
        return True

    def next_id(self, created_at_ms: int) -> str:
        stamp = int(created_at_ms)
        if self._items:
            try:
                newest = int(self._items[0].id)
            except ValueError:
                newest = None
            if newest is not None and stamp <= newest:
                stamp = newest + 1
        return str(stamp)

    async def add_generation(
        self,
        prompt: str,
        image: EncodedImage,
        created_at_ms: int | None = None,
    ) -> HistoryItem:
        thumbnail = await make_thumbnail(image, self.thumbnail_size)
        timestamp = int(created_at_ms) if created_at_ms is not None else now_ms()
        item = HistoryItem(
            id=self.next_id(timestamp),
            prompt=prompt,
            image_url=thumbnail,
            timestamp=timestamp,
        )
        self.insert(item)
        return item

    def _read(self) -> list[HistoryItem]:
        try:
            if not self.path.exists():
                return []
            payload = json.loads(self.path.read_text(encoding="utf-8"))
            if not isinstance(payload, list):
                raise ValueError("history payload must be a list")
            items = [HistoryItem.from_dict(entry) for entry in payload]
        except (OSError, ValueError, OverflowError) as exc:
            logger.warning("Failed to load history from %s: %s", self.path, exc)
            return []
        return items[: self.capacity]

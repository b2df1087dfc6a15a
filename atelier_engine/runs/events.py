"""Append-only session events stream."""

from __future__ import annotations

import json
import logging
import threading
from dataclasses import dataclass
from dataclasses import field
from pathlib import Path
from typing import Any

from ..utils import now_utc_iso


logger = logging.getLogger(__name__)


@dataclass
class EventWriter:
    path: Path
    session_id: str
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, init=False)

    def emit(self, event_type: str, **payload: Any) -> dict[str, Any]:
        event = {
            "type": event_type,
            "session_id": self.session_id,
            "ts": now_utc_iso(),
        }
        event.update(payload)
        line = f"{json.dumps(event)}\n"
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self._lock:
                with self.path.open("a", encoding="utf-8") as handle:
                    handle.write(line)
        except OSError as exc:
            logger.warning("Failed to write event %s to %s: %s", event_type, self.path, exc)
        return event


class NullEventWriter:
    session_id = ""

    def emit(self, event_type: str, **payload: Any) -> dict[str, Any]:
        return {"type": event_type, **payload}

"""CLI progress helpers."""

from __future__ import annotations

import asyncio
import os
import shutil
import sys
import time
from typing import Callable, TextIO

_BOLD = "\x1b[1m"
_GREY = "\x1b[38;2;150;157;165m"
_RESET = "\x1b[0m"


def progress_line(label: str, start: float | None = None) -> tuple[str, float]:
    now = time.monotonic()
    origin = now if start is None else start
    elapsed = max(0, int(now - origin))
    minutes, seconds = divmod(elapsed, 60)
    return f"• {label} ({minutes}m {seconds:02d}s)", origin


class ProgressTicker:
    """Redraws a status line while a coroutine runs.

    ``label`` is polled on every tick so the line follows the session's
    loading message.
    """

    def __init__(
        self,
        label: Callable[[], str],
        stream: TextIO | None = None,
        interval_s: float = 1.0,
    ) -> None:
        self.label = label
        self.stream = stream or sys.stdout
        self.interval_s = max(0.05, interval_s)
        self.start: float | None = None
        self._enabled = bool(getattr(self.stream, "isatty", lambda: False)())
        self._task: asyncio.Task[None] | None = None

    async def __aenter__(self) -> "ProgressTicker":
        line, self.start = progress_line(self._current_label())
        if not self._enabled:
            self.stream.write(f"{_BOLD}{line}{_RESET}\n")
            self.stream.flush()
            return self
        self._write_in_place(f"{_BOLD}{line}{_RESET}")
        self._task = asyncio.create_task(self._run())
        return self

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        self._write_done_line()
        return False

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval_s)
            line, _ = progress_line(self._current_label(), self.start)
            self._write_in_place(f"{_BOLD}{line}{_RESET}")

    def _current_label(self) -> str:
        return self.label() or "Working"

    def _write_in_place(self, line: str) -> None:
        self.stream.write("\r")
        self.stream.write(line)
        self.stream.write("\033[K")
        self.stream.flush()

    def _write_done_line(self) -> None:
        elapsed = max(0, int(time.monotonic() - (self.start or time.monotonic())))
        width = _resolve_terminal_width(self.stream, 100)
        styled = f"{_GREY}{_separator_line(f'Finished in {_format_duration(elapsed)}', width)}{_RESET}"
        if self._enabled:
            self.stream.write("\r")
            self.stream.write(styled)
            self.stream.write("\033[K\n")
        else:
            self.stream.write(f"{styled}\n")
        self.stream.flush()


def _format_duration(seconds: int) -> str:
    minutes, secs = divmod(seconds, 60)
    if minutes:
        return f"{minutes}m {secs:02d}s"
    return f"{secs}s"


def _separator_line(label: str, width: int) -> str:
    content = f" {label} "
    if width <= len(content) + 2:
        return content.strip()
    remaining = width - len(content)
    left = remaining // 2
    right = remaining - left
    return f"{'─' * left}{content}{'─' * right}"


def _resolve_terminal_width(stream: TextIO | None, fallback: int) -> int:
    if stream and hasattr(stream, "fileno"):
        try:
            return os.get_terminal_size(stream.fileno()).columns
        except (OSError, ValueError):
            pass
    return shutil.get_terminal_size(fallback=(fallback, 20)).columns

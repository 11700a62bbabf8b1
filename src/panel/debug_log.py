"""Thread-shared transcript of device traffic.

Written by the serial reader thread and by HTTP handlers (outbound commands),
read by HTTP handlers. Every operation holds the log's lock.
"""

from __future__ import annotations

import threading
from collections import deque
from typing import TYPE_CHECKING

from panel.misc import time_now_str

if TYPE_CHECKING:
    from datetime import datetime


class DebugLog:
    """Append-only, clearable log of `[HH:MM:SS.fff] text` lines.

    Unbounded unless `max_lines` is given, in which case the oldest lines are
    dropped first.
    """

    _lines: deque[str]
    _lock: threading.Lock

    def __init__(self, *, max_lines: int | None = None) -> None:
        if max_lines is not None and max_lines < 1:
            msg = f"max_lines must be positive, got {max_lines}"
            raise ValueError(msg)

        self._lines = deque(maxlen=max_lines)
        self._lock = threading.Lock()

    def append(self, text: str, *, ts: datetime | None = None) -> str:
        """Append `text` stamped with `ts` (default: now). Returns the stored line."""
        # Stamp inside the lock so timestamps follow insertion order
        with self._lock:
            line = f"[{time_now_str(ts)}] {text}"
            self._lines.append(line)
        return line

    def read_all(self) -> str:
        """Return the full transcript, one newline-terminated line per entry."""
        with self._lock:
            return "".join(f"{line}\n" for line in self._lines)

    def lines(self) -> list[str]:
        with self._lock:
            return list(self._lines)

    def clear(self) -> None:
        with self._lock:
            self._lines.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._lines)

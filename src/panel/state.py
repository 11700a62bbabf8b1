"""
Game state shared between the serial reader thread and API endpoints.

Thread Safety:
    All fields are guarded by one lock. `update()` applies several fields
    at once and `snapshot()` copies all of them under the same lock, so a
    reader never sees a half-applied update.

Data Flow:
    Device lines   -> Bridge.handle_line()      -> GameState.update()
    Commands       -> CommandDispatcher          -> GameState.update()
    API requests   -> GameState.snapshot()       -> JSON / HTML
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Final, Unpack

from panel.types import ConnStatus, Difficulty, Snapshot, StateUpdate

# Device firmware starts every round with this many attempts
DEFAULT_ATTEMPTS: Final = 3


@dataclass
class GameState:
    """In-memory state for the single connected device."""

    connection: ConnStatus = "Disconnected"
    last_error: str | None = None
    game_status: str = "STANDBY"
    powered: bool = False
    score: int = 0
    attempts_remaining: int = DEFAULT_ATTEMPTS
    difficulty: Difficulty = Difficulty.MODERATE

    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False, compare=False)

    def update(self, **fields: Unpack[StateUpdate]) -> None:
        """Atomically set any of: game_status, powered, score, attempts_remaining, difficulty."""
        for name, val in fields.items():
            if name in ("score", "attempts_remaining") and val < 0:  # type: ignore[operator]
                msg = f"{name} must be >= 0, got {val}"
                raise ValueError(msg)

        with self._lock:
            for name, val in fields.items():
                setattr(self, name, val)

    def set_connection(self, status: ConnStatus, error: str | None = None) -> None:
        with self._lock:
            self.connection = status
            self.last_error = error

    def record_error(self, error: str) -> None:
        """Remember the latest I/O error without changing the connection status."""
        with self._lock:
            self.last_error = error

    def snapshot(self) -> Snapshot:
        """Return a consistent copy of all fields (JSON field names)."""
        with self._lock:
            return {
                "connectionStatus": self._connection_status(),
                "gameStatus": self.game_status,
                "powered": self.powered,
                "score": self.score,
                "attemptsRemaining": self.attempts_remaining,
                "difficulty": self.difficulty.label,
                "difficultyLevel": int(self.difficulty),
                "lastError": self.last_error,
            }

    def _connection_status(self) -> str:
        # Caller holds the lock
        if self.connection == "Failed":
            return f"Failed: {self.last_error}"
        return self.connection

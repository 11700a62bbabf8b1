from enum import IntEnum
from typing import Literal, TypedDict

type ConnStatus = Literal["Disconnected", "Connected", "Failed"]


class Difficulty(IntEnum):
    """Device difficulty levels (`D:<n>` command)."""

    EASY = 0
    MODERATE = 1
    HARD = 2

    @property
    def label(self) -> str:
        return self.name.capitalize()


class Snapshot(TypedDict):
    connectionStatus: str
    gameStatus: str
    powered: bool
    score: int
    attemptsRemaining: int
    difficulty: str
    difficultyLevel: int
    lastError: str | None


class StateUpdate(TypedDict, total=False):
    game_status: str
    powered: bool
    score: int
    attempts_remaining: int
    difficulty: Difficulty

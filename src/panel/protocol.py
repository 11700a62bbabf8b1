"""
Line protocol spoken by the Safe-Cracker firmware.

Outbound (Panel -> Device), one ASCII line per command:
    P        power on (start game)
    O        power off (end game)
    L        lock-in current dial position
    D:<n>    set difficulty, n in {0, 1, 2}
    T        LED self-test
    U / K    manual servo unlock / lock

Inbound (Device -> Panel): line-delimited text. Lines are matched by prefix,
first match wins; anything unrecognised is debug text only.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Final

from rich.markup import escape

from panel.errors import InvalidArgumentError
from panel.types import Difficulty, StateUpdate

if TYPE_CHECKING:
    from collections.abc import Callable

    type LineHandler = Callable[[str], StateUpdate]

_log = logging.getLogger("Protocol")

CMD_POWER_ON: Final = "P"
CMD_POWER_OFF: Final = "O"
CMD_LOCK_IN: Final = "L"
CMD_TEST_LEDS: Final = "T"
CMD_SERVO_UNLOCK: Final = "U"
CMD_SERVO_LOCK: Final = "K"

# Format: {command: description} for logging
COMMANDS: Final[dict[str, str]] = {
    CMD_POWER_ON: "power on",
    CMD_POWER_OFF: "power off",
    CMD_LOCK_IN: "lock-in",
    CMD_TEST_LEDS: "LED test",
    CMD_SERVO_UNLOCK: "manual unlock",
    CMD_SERVO_LOCK: "manual lock",
    "D:": "set difficulty",
}

GAME_STATUS_FIELDS: Final = 6  # angle,target,attempts,score,secs,difficulty

# STATUS:<text> values that also report the power state
POWER_STATUSES: Final[dict[str, bool]] = {
    "POWER_ON": True,
    "POWER_OFF": False,
    "STANDBY": False,
}


def describe(command: str) -> str:
    """Human-readable description of an outbound command (for logging)."""
    if command.startswith("D:"):
        return f"{COMMANDS['D:']} {command[2:]}"
    return COMMANDS.get(command, "unknown")


def difficulty_from(level: object) -> Difficulty:
    """Validate a difficulty level (0, 1 or 2).

    Raises:
        InvalidArgumentError: `level` is not an int in range (bools are rejected)
    """
    if isinstance(level, bool) or not isinstance(level, int):
        msg = f"Difficulty level must be an integer, got {level!r}"
        raise InvalidArgumentError(msg)

    try:
        return Difficulty(level)
    except ValueError as e:
        msg = f"Difficulty level must be 0, 1 or 2, got {level}"
        raise InvalidArgumentError(msg) from e


def difficulty_cmd(level: Difficulty) -> str:
    return f"D:{int(level)}"


def _count(text: str) -> int:
    """Parse a non-negative integer field. Raises ValueError otherwise."""
    val = int(text.strip())
    if val < 0:
        msg = f"negative value: {val}"
        raise ValueError(msg)
    return val


def _status(rest: str) -> StateUpdate:
    update: StateUpdate = {"game_status": rest}
    if rest in POWER_STATUSES:
        update["powered"] = POWER_STATUSES[rest]
    return update


def _score(rest: str) -> StateUpdate:
    return {"score": _count(rest)}


def _attempts(rest: str) -> StateUpdate:
    return {"attempts_remaining": _count(rest)}


def _difficulty(rest: str) -> StateUpdate:
    return {"difficulty": Difficulty(_count(rest))}


def _game_status(rest: str) -> StateUpdate:
    fields = rest.split(",")
    if len(fields) != GAME_STATUS_FIELDS:
        msg = f"expected {GAME_STATUS_FIELDS} fields, got {len(fields)}"
        raise ValueError(msg)

    _, _, attempts, score, _, diff = fields
    return {
        "attempts_remaining": _count(attempts),
        "score": _count(score),
        "difficulty": Difficulty(_count(diff)),
    }


# Order matters: first matching prefix wins
INBOUND_PREFIXES: Final[tuple[tuple[str, LineHandler], ...]] = (
    ("STATUS:", _status),
    ("FINAL_SCORE:", _score),
    ("TOTAL_SCORE:", _score),
    ("SCORE:", _score),
    ("ATTEMPTS:", _attempts),
    ("RESULT:WRONG,", _attempts),
    ("DIFFICULTY:", _difficulty),
    ("GAME_STATUS:", _game_status),
)


def parse_line(line: str) -> StateUpdate:
    """Map one inbound line to the state fields it sets.

    Returns an empty dict for debug-only lines and for known prefixes whose
    payload is malformed (those are logged and otherwise ignored).
    """
    for prefix, handler in INBOUND_PREFIXES:
        if not line.startswith(prefix):
            continue

        try:
            return handler(line[len(prefix) :])
        except ValueError as e:
            _log.warning("Ignoring malformed %s line: %s (%s)", prefix.rstrip(":,"), escape(repr(line)), e)
            return {}

    return {}

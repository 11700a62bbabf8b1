"""Operator intents -> device commands.

Every method writes exactly one line through the bridge or raises. Local state
is only touched after a successful write. Score and attempts are never changed
here; only the device reports them.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from panel import protocol
from panel.protocol import difficulty_cmd, difficulty_from

if TYPE_CHECKING:
    from logging import Logger

    from panel.bridge import Bridge


class CommandDispatcher:
    bridge: Bridge

    _log: Logger

    def __init__(self, bridge: Bridge) -> None:
        self.bridge = bridge
        self._log = logging.getLogger("Commands")

    def power_on(self) -> None:
        self.bridge.send(protocol.CMD_POWER_ON)
        # Optimistic: the device confirms with STATUS:POWER_ON shortly after
        self.bridge.state.update(game_status="RUNNING", powered=True)

    def power_off(self) -> None:
        self.bridge.send(protocol.CMD_POWER_OFF)
        self.bridge.state.update(game_status="STANDBY", powered=False)

    def lock_in(self) -> None:
        self.bridge.send(protocol.CMD_LOCK_IN)

    def set_difficulty(self, level: object) -> str:
        """Send `D:<level>` and return the level's label (Easy/Moderate/Hard).

        Raises:
            InvalidArgumentError: `level` not in {0, 1, 2}; nothing is sent
            NotConnectedError: No open serial port
            WriteError: Write failed
        """
        difficulty = difficulty_from(level)
        self.bridge.send(difficulty_cmd(difficulty))
        self.bridge.state.update(difficulty=difficulty)
        self._log.info("Difficulty set to %s", difficulty.label)
        return difficulty.label

    def test_leds(self) -> None:
        self.bridge.send(protocol.CMD_TEST_LEDS)

    def servo_unlock(self) -> None:
        self.bridge.send(protocol.CMD_SERVO_UNLOCK)

    def servo_lock(self) -> None:
        self.bridge.send(protocol.CMD_SERVO_LOCK)

"""
Serial <-> web bridge for the Safe-Cracker device.

The Bridge is the one session object shared by every request handler. It owns
the serial link, the debug transcript and the game state for its whole
lifetime: created at startup, `start()`ed once, `stop()`ped once at shutdown.

Data Flow:
    Device -> SerialLink reader -> Bridge.handle_line() -> DebugLog + GameState
    HTTP   -> CommandDispatcher -> Bridge.send()        -> DebugLog + SerialLink

Connection Handling:
    - A failed open leaves the bridge in degraded mode: HTTP keeps working and
      device commands raise NotConnectedError
    - No reconnects; a port that fails to open stays closed
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING

from rich.markup import escape

from panel.debug_log import DebugLog
from panel.errors import NotConnectedError, OpenError, WriteError
from panel.protocol import describe, parse_line
from panel.serial_link import SerialLink
from panel.state import GameState

if TYPE_CHECKING:
    from collections.abc import Callable
    from logging import Logger

    from panel.errors import ReadError

    type LinkFactory = Callable[..., SerialLink]


class Bridge:
    """Owns the device session: serial link, debug log and game state."""

    serial_port: str
    baud_rate: int
    debug_log: DebugLog
    state: GameState

    _log: Logger
    _link: SerialLink
    _lifecycle_lock: threading.Lock
    _started: bool
    _stopped: bool

    def __init__(
        self,
        *,
        serial_port: str,
        baud_rate: int,
        debug_log: DebugLog | None = None,
        state: GameState | None = None,
        link_factory: LinkFactory = SerialLink,
    ) -> None:
        self.serial_port = serial_port
        self.baud_rate = baud_rate
        self.debug_log = DebugLog() if debug_log is None else debug_log
        self.state = GameState() if state is None else state

        self._log = logging.getLogger("Bridge")
        self._link = link_factory(
            port=serial_port,
            baud_rate=baud_rate,
            on_line=self.handle_line,
            on_read_error=self.handle_read_error,
        )
        self._lifecycle_lock = threading.Lock()
        self._started = False
        self._stopped = False

    # ==================== Lifecycle ====================

    @property
    def connected(self) -> bool:
        return self._link.is_open

    def start(self) -> bool:
        """Open the serial port. Returns True if connected.

        Failure is recorded (state + debug log) rather than raised.
        """
        with self._lifecycle_lock:
            if self._started:
                return self.connected
            self._started = True

            try:
                self._link.open()
            except OpenError as e:
                self.state.set_connection("Failed", str(e))
                self.debug_log.append(f"Connection failed: {e}")
                self._log.critical("Failed to connect to %s: %s", self.serial_port, escape(str(e)))
                return False

            self.state.set_connection("Connected")
            msg = f"Connected to device on {self.serial_port} at {self.baud_rate} baud"
            self.debug_log.append(msg)
            self._log.info(msg)
            return True

    def stop(self) -> None:
        """Close the serial port. Only the first call does anything."""
        with self._lifecycle_lock:
            if self._stopped:
                return
            self._stopped = True

            was_open = self.connected
            self._link.close()
            if was_open:
                self.state.set_connection("Disconnected")
            self._log.info("Shutdown complete")

    # ==================== Device -> Panel ====================

    def handle_line(self, line: str) -> None:
        """Record one inbound line and apply any state it carries."""
        self.debug_log.append(line)
        self._log.debug("[bright_white on grey30][Device -> Panel][/] %s", escape(line))

        update = parse_line(line)
        if update:
            self.state.update(**update)

    def handle_read_error(self, err: ReadError) -> None:
        self.debug_log.append(f"Error: {err}")
        self.state.record_error(str(err))

    # ==================== Panel -> Device ====================

    def send(self, command: str) -> None:
        """Write one command line to the device.

        Raises:
            NotConnectedError: No open serial port
            WriteError: Write failed or timed out (also logged to the transcript)
        """
        if not self.connected:
            raise NotConnectedError

        self.debug_log.append(f"Sending: {command}")
        self._log.info("[bright_white on grey30][Panel -> Device][/] %r (%s)", command, describe(command))

        try:
            self._link.write_line(command)
        except NotConnectedError:
            self.debug_log.append("Error: Device not connected")
            raise
        except WriteError as e:
            self.debug_log.append(f"Error: {e}")
            self.state.record_error(str(e))
            self._log.error("Serial error while writing %r: %s", command, escape(str(e)))
            raise

"""
Serial link to the Safe-Cracker device.

Owns the pyserial handle and a daemon reader thread:

    Device -> UART -> reader thread -> on_line(str)
    caller -> write_line(str) -> UART -> Device

Port settings are fixed: DTR/RTS asserted, 1 s read/write timeouts, blocking
open. Any pyserial URL works as the port (e.g. `loop://` for a loopback).
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING, ClassVar, Final

from rich.markup import escape
from serial import SerialException, SerialTimeoutException, serial_for_url

from panel.errors import NotConnectedError, OpenError, ReadError, WriteError

if TYPE_CHECKING:
    from collections.abc import Callable
    from logging import Logger

    from serial import Serial

    type LineCallback = Callable[[str], None]
    type ErrorCallback = Callable[[ReadError], None]


IO_TIMEOUT: Final = 1.0  # Secs for both reads and writes
READER_JOIN_TIMEOUT: Final = 2 * IO_TIMEOUT
MAX_LINE_BYTES: Final = 4096  # Unterminated data beyond this is delivered as a line


class SerialLink:
    """Line-oriented serial connection with an asynchronous line reader."""

    BYTES_ENCODING: ClassVar = "ascii"
    LINE_ENCODING: ClassVar = "utf-8"  # Firmware prints the odd emoji
    NEWLINE: ClassVar = b"\n"

    port: str
    baud_rate: int
    _log: Logger
    _serial: Serial | None
    _reader: threading.Thread | None
    _stop: threading.Event
    _write_lock: threading.Lock

    def __init__(
        self,
        *,
        port: str,
        baud_rate: int,
        on_line: LineCallback,
        on_read_error: ErrorCallback,
    ) -> None:
        self.port = port
        self.baud_rate = baud_rate
        self.on_line = on_line
        self.on_read_error = on_read_error

        self._log = logging.getLogger("SerialLink")
        self._serial = None
        self._reader = None
        self._stop = threading.Event()
        self._write_lock = threading.Lock()

    # ==================== Lifecycle ====================

    @property
    def is_open(self) -> bool:
        ser = self._serial
        return ser is not None and ser.is_open

    def open(self) -> None:
        """Open the port and start the reader thread.

        Raises:
            OpenError: Port missing, busy or misconfigured
        """
        if self.is_open:
            return

        self._log.debug("Opening serial port %s (%d baud)", self.port, self.baud_rate)
        try:
            ser = serial_for_url(
                self.port,
                baudrate=self.baud_rate,
                timeout=IO_TIMEOUT,
                write_timeout=IO_TIMEOUT,
                do_not_open=True,
            )
            ser.dtr = True
            ser.rts = True
            ser.open()
        except (OSError, SerialException, ValueError) as e:
            raise OpenError(str(e)) from e

        self._serial = ser
        self._stop.clear()
        self._reader = threading.Thread(target=self._read_loop, name="serial-reader", daemon=True)
        self._reader.start()
        self._log.info("Opened %s", self.port)

    def close(self) -> None:
        """Stop the reader, flush and release the port. Safe to call repeatedly."""
        self._stop.set()

        reader, self._reader = self._reader, None
        if reader is not None and reader is not threading.current_thread():
            reader.join(timeout=READER_JOIN_TIMEOUT)

        ser, self._serial = self._serial, None
        if ser is None:
            return

        with self._write_lock:
            try:
                if ser.is_open:
                    ser.flush()
            except (OSError, SerialException) as e:
                self._log.warning("Flush failed while closing %s: %s", self.port, e)
            finally:
                ser.close()

        self._log.info("Closed %s", self.port)

    # ==================== I/O ====================

    def write_line(self, text: str) -> None:
        """Write `text` followed by the line terminator.

        Raises:
            NotConnectedError: Port is not open
            WriteError: Encode failure, OS error or write timeout
        """
        try:
            payload = text.encode(SerialLink.BYTES_ENCODING) + SerialLink.NEWLINE
        except UnicodeEncodeError as e:
            msg = f"Cannot encode {text!r} as {SerialLink.BYTES_ENCODING}"
            raise WriteError(msg) from e

        with self._write_lock:
            ser = self._serial
            if ser is None or not ser.is_open:
                raise NotConnectedError

            try:
                ser.write(payload)
            except SerialTimeoutException as e:
                msg = f"Write timeout after {IO_TIMEOUT:g}s"
                raise WriteError(msg) from e
            except (OSError, SerialException) as e:
                raise WriteError(str(e)) from e

    def _read_loop(self) -> None:
        """Read lines until closed.

        - Partial lines (read timeout mid-line) are carried over to the next read,
          up to MAX_LINE_BYTES
        - Read errors go to `on_read_error`; the loop waits one timeout and carries on
        - Exceptions from `on_line` are logged, never propagated
        """
        self._log.debug("Listening for lines on %s", self.port)

        pending = b""
        while not self._stop.is_set():
            ser = self._serial
            if ser is None:
                break

            try:
                chunk = ser.readline()
            except (OSError, SerialException, TypeError, AttributeError) as e:
                # pyserial raises TypeError/AttributeError when the fd vanishes mid-read
                if self._stop.is_set():
                    break
                self._report_read_error(e)
                self._stop.wait(IO_TIMEOUT)
                continue

            if not chunk:
                continue

            pending += chunk
            if not pending.endswith(SerialLink.NEWLINE) and len(pending) < MAX_LINE_BYTES:
                continue

            line = pending.decode(SerialLink.LINE_ENCODING, errors="replace").rstrip("\r\n")
            pending = b""
            if not line:
                continue

            try:
                self.on_line(line)
            except Exception:
                self._log.exception("Line handler failed for %s", escape(repr(line)))

        self._log.debug("Reader stopped")

    def _report_read_error(self, exc: BaseException) -> None:
        err = ReadError(str(exc) or type(exc).__name__)
        self._log.error("Serial error while reading %s: %s", self.port, err)
        try:
            self.on_read_error(err)
        except Exception:
            self._log.exception("Read error handler failed")

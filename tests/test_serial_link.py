"""SerialLink against pyserial's `loop://` port (writes are read straight back)."""

import threading

import pytest
from serial import SerialException

from panel.errors import NotConnectedError, OpenError, ReadError, WriteError
from panel.serial_link import MAX_LINE_BYTES, SerialLink

WAIT = 5.0


class Collector:
    def __init__(self, expected=1):
        self.lines = []
        self.errors = []
        self._expected = expected
        self._done = threading.Event()

    def on_line(self, line):
        self.lines.append(line)
        if len(self.lines) >= self._expected:
            self._done.set()

    def on_read_error(self, err):
        self.errors.append(err)

    def wait(self):
        return self._done.wait(WAIT)


def make_link(port="loop://", expected=1):
    col = Collector(expected)
    link = SerialLink(port=port, baud_rate=9600, on_line=col.on_line, on_read_error=col.on_read_error)
    return link, col


@pytest.fixture
def loop():
    link, col = make_link()
    link.open()
    yield link, col
    link.close()


def test_open_sets_line_signals(loop):
    link, _ = loop
    assert link.is_open
    assert link._serial.dtr
    assert link._serial.rts
    assert link._serial.timeout == 1.0
    assert link._serial.write_timeout == 1.0


def test_written_line_comes_back_through_reader(loop):
    link, col = loop
    link.write_line("STATUS:RUNNING")

    assert col.wait()
    assert col.lines == ["STATUS:RUNNING"]
    assert col.errors == []


def test_crlf_is_stripped_and_blank_lines_skipped():
    link, col = make_link(expected=2)
    link.open()
    try:
        link._serial.write(b"\r\nSCORE:100\r\n\nTARGET:42\r\n")
        assert col.wait()
        assert col.lines == ["SCORE:100", "TARGET:42"]
    finally:
        link.close()


def test_handler_exception_does_not_kill_reader():
    seen = []
    done = threading.Event()

    def on_line(line):
        seen.append(line)
        if line == "boom":
            raise RuntimeError(line)
        done.set()

    link = SerialLink(port="loop://", baud_rate=9600, on_line=on_line, on_read_error=lambda _: None)
    link.open()
    try:
        link.write_line("boom")
        link.write_line("after")
        assert done.wait(WAIT)
        assert seen == ["boom", "after"]
    finally:
        link.close()


def test_open_failure_raises_open_error():
    link, _ = make_link(port="/dev/this-port-does-not-exist")
    with pytest.raises(OpenError):
        link.open()

    assert not link.is_open


def test_write_requires_open_port():
    link, _ = make_link()
    with pytest.raises(NotConnectedError):
        link.write_line("P")


def test_non_ascii_write_is_rejected(loop):
    link, _ = loop
    with pytest.raises(WriteError):
        link.write_line("D:\u00b2")


def test_close_is_idempotent(loop):
    link, _ = loop
    link.close()
    link.close()

    assert not link.is_open
    with pytest.raises(NotConnectedError):
        link.write_line("O")


class ScriptedPort:
    """Port whose `readline()` replays a script of chunks/exceptions, then stops the link."""

    def __init__(self, link, script):
        self.link = link
        self.script = list(script)
        self.is_open = True

    def readline(self):
        if not self.script:
            self.link._stop.set()
            return b""
        item = self.script.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item


def run_reader(script):
    link, col = make_link()
    link._serial = ScriptedPort(link, script)
    link._read_loop()
    return link, col


def test_read_error_reported_and_reader_continues():
    link, col = run_reader([SerialException("device reports readiness to read but returned no data"), b"SCORE:5\n"])

    assert len(col.errors) == 1
    assert isinstance(col.errors[0], ReadError)
    assert "returned no data" in str(col.errors[0])
    assert col.lines == ["SCORE:5"]
    assert link.is_open


def test_line_split_by_read_timeout_is_joined():
    _, col = run_reader([b"SCO", b"", b"RE:5\r\n"])

    assert col.lines == ["SCORE:5"]
    assert col.errors == []


def test_unterminated_stream_is_capped():
    half = b"A" * (MAX_LINE_BYTES // 2 + 1)
    _, col = run_reader([half, half, b"B\n"])

    assert col.lines == ["A" * len(half * 2), "B"]

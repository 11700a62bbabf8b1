from __future__ import annotations

from collections.abc import Callable, Iterator
from functools import partial

import pytest
from fastapi.testclient import TestClient

from panel.app import create_app
from panel.bridge import Bridge
from panel.errors import NotConnectedError, OpenError, WriteError


class FakeLink:
    """In-memory stand-in for SerialLink; records written lines."""

    def __init__(
        self,
        *,
        port: str,
        baud_rate: int,
        on_line: Callable[[str], None],
        on_read_error: Callable[..., None],
        fail_open: str | None = None,
        fail_write: str | None = None,
    ) -> None:
        self.port = port
        self.baud_rate = baud_rate
        self.on_line = on_line
        self.on_read_error = on_read_error
        self.fail_open = fail_open
        self.fail_write = fail_write
        self.written: list[str] = []
        self.close_calls = 0
        self._open = False

    @property
    def is_open(self) -> bool:
        return self._open

    def open(self) -> None:
        if self.fail_open is not None:
            raise OpenError(self.fail_open)
        self._open = True

    def write_line(self, text: str) -> None:
        if not self._open:
            raise NotConnectedError
        if self.fail_write is not None:
            raise WriteError(self.fail_write)
        self.written.append(text)

    def close(self) -> None:
        self.close_calls += 1
        self._open = False

    def feed(self, line: str) -> None:
        """Simulate a line arriving from the device."""
        self.on_line(line)


def make_bridge(**link_kwargs: str) -> Bridge:
    return Bridge(serial_port="/dev/ttyFAKE0", baud_rate=9600, link_factory=partial(FakeLink, **link_kwargs))


@pytest.fixture
def bridge() -> Iterator[Bridge]:
    b = make_bridge()
    b.start()
    yield b
    b.stop()


@pytest.fixture
def offline_bridge() -> Iterator[Bridge]:
    b = make_bridge(fail_open="[Errno 2] could not open port /dev/ttyFAKE0")
    b.start()
    yield b
    b.stop()


@pytest.fixture
def link(bridge: Bridge) -> FakeLink:
    return bridge._link  # type: ignore[return-value]


@pytest.fixture
def client() -> Iterator[TestClient]:
    with TestClient(create_app(make_bridge())) as c:
        yield c


@pytest.fixture
def offline_client() -> Iterator[TestClient]:
    with TestClient(create_app(make_bridge(fail_open="could not open port"))) as c:
        yield c

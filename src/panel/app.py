"""FastAPI web panel for the Safe-Cracker device.

Provides endpoints for:
    - Serving the panel HTML/JS frontend
    - Reading game state and the serial debug transcript (polled by frontend)
    - Sending commands to the device over serial

Device commands are plain `def` endpoints so FastAPI runs them in its
threadpool; a serial write (bounded by its 1 s timeout) never blocks the
event loop.
"""

from __future__ import annotations

import json
from contextlib import asynccontextmanager
from importlib.resources import files
from pathlib import Path
from typing import TYPE_CHECKING, Any, Final

from fastapi import FastAPI, Request
from fastapi.responses import HTMLResponse, PlainTextResponse
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates
from starlette.concurrency import run_in_threadpool

from panel.commands import CommandDispatcher
from panel.errors import InvalidArgumentError, NotConnectedError, WriteError

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from panel.bridge import Bridge
# Templates and static files bundled with package (HTML, JS, CSS)
PKG_DIR: Final = Path(str(files("panel")))
STATIC_DIR: Final = PKG_DIR / "static"
TEMPLATES_DIR: Final = PKG_DIR / "templates"

# How often the frontend polls /status and /debug
POLL_INTERVAL_MS: Final = 2000


def create_app(bridge: Bridge) -> FastAPI:
    """Build the panel app around `bridge`.

    The bridge is started on app startup and stopped on shutdown.
    """

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        await run_in_threadpool(bridge.start)
        try:
            yield
        finally:
            await run_in_threadpool(bridge.stop)

    app = FastAPI(title="Safe-Cracker Control Panel", lifespan=lifespan)
    app.state.bridge = bridge
    app.state.commands = commands = CommandDispatcher(bridge)

    app.mount("/static", StaticFiles(directory=STATIC_DIR), name="static")
    templates = Jinja2Templates(directory=TEMPLATES_DIR)

    # === Error mapping ===

    @app.exception_handler(NotConnectedError)
    async def not_connected_handler(_: Request, exc: NotConnectedError) -> PlainTextResponse:
        return PlainTextResponse(str(exc), status_code=400)

    @app.exception_handler(InvalidArgumentError)
    async def invalid_argument_handler(_: Request, exc: InvalidArgumentError) -> PlainTextResponse:
        return PlainTextResponse(str(exc), status_code=400)

    @app.exception_handler(WriteError)
    async def write_error_handler(_: Request, exc: WriteError) -> PlainTextResponse:
        return PlainTextResponse(f"Serial write failed: {exc}", status_code=503)

    # === Views ===

    @app.get("/", response_class=HTMLResponse)
    async def index(request: Request) -> HTMLResponse:
        """Serve main panel page, pre-filled with the current snapshot."""
        return templates.TemplateResponse(
            request,
            "index.html",
            {
                "snapshot": bridge.state.snapshot(),
                "debug": bridge.debug_log.read_all(),
                "poll_interval_ms": POLL_INTERVAL_MS,
            },
        )

    @app.get("/debug", response_class=PlainTextResponse)
    async def get_debug() -> str:
        return bridge.debug_log.read_all()

    @app.post("/clear-debug", response_class=PlainTextResponse)
    async def clear_debug() -> str:
        bridge.debug_log.clear()
        return "Debug output cleared"

    @app.get("/status")
    async def get_status() -> dict[str, Any]:
        return bridge.state.snapshot()

    # === Command Endpoints ===
    # Each writes one line to the device; 400 if no device is connected

    @app.post("/on", response_class=PlainTextResponse)
    def post_power_on() -> str:
        commands.power_on()
        return "Power ON command sent!"

    @app.post("/off", response_class=PlainTextResponse)
    def post_power_off() -> str:
        commands.power_off()
        return "Power OFF command sent!"

    @app.post("/lock", response_class=PlainTextResponse)
    def post_lock_in() -> str:
        commands.lock_in()
        return "Lock-in command sent!"

    @app.post("/difficulty", response_class=PlainTextResponse)
    async def post_difficulty(request: Request) -> str:
        """Set difficulty from a JSON body `{"level": 0|1|2}`."""
        body = await request.body()
        try:
            data: Any = json.loads(body)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            msg = f"Malformed JSON body: {e}"
            raise InvalidArgumentError(msg) from e

        if not isinstance(data, dict) or "level" not in data:
            msg = 'Expected a JSON object like {"level": 1}'
            raise InvalidArgumentError(msg)

        label = await run_in_threadpool(commands.set_difficulty, data["level"])
        return f"Difficulty set to {label}"

    @app.post("/test-leds", response_class=PlainTextResponse)
    def post_test_leds() -> str:
        commands.test_leds()
        return "LED test command sent!"

    @app.post("/servo/unlock", response_class=PlainTextResponse)
    def post_servo_unlock() -> str:
        commands.servo_unlock()
        return "Manual unlock command sent!"

    @app.post("/servo/lock", response_class=PlainTextResponse)
    def post_servo_lock() -> str:
        commands.servo_lock()
        return "Manual lock command sent!"

    return app

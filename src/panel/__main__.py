"""
Panel entry point.

    1. Parse CLI args (serial port, baud, log level) and env config (.env)
    2. Build the Bridge and the FastAPI app around it
    3. Serve via uvicorn; the app lifespan opens/closes the serial port

The bridge is also stopped in a `finally` so the port is released however
uvicorn exits (stop is idempotent).
"""

import contextlib
import logging

import uvicorn

from .app import create_app
from .bridge import Bridge
from .debug_log import DebugLog
from .misc import get_cli_args, get_env_vars, init_logging


def main() -> None:
    args = get_cli_args()
    init_logging(args.log_level)
    env = get_env_vars()

    bridge = Bridge(
        serial_port=args.serial_port,
        baud_rate=args.baud_rate,
        debug_log=DebugLog(max_lines=env["debug_log_max_lines"]),
    )
    app = create_app(bridge)

    logging.getLogger("Panel").info(
        "Starting control panel at [cyan]http://%s:%d[/]",
        env["app_host"],
        env["app_port"],
    )

    with contextlib.suppress(KeyboardInterrupt):
        try:
            uvicorn.run(app, host=env["app_host"], port=env["app_port"])
        finally:
            bridge.stop()


if __name__ == "__main__":
    main()

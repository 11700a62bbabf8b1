import os
import sys
from typing import Final, TypedDict

from dotenv import load_dotenv

from panel import __prog__

from .utils import cerr

_PORT_MIN: Final = 1
_PORT_MAX: Final = 65535

DEFAULT_APP_HOST: Final = "127.0.0.1"
DEFAULT_APP_PORT: Final = 5001


class _AppConf(TypedDict):
    app_host: str
    app_port: int
    debug_log_max_lines: int | None


def _ensure_valid_port(name: str, default: int) -> int:
    val = os.getenv(name)
    if val is None or not val.strip():
        return default

    try:
        port = int(val)
    except ValueError as e:
        msg = f"[cyan]{name}[/] is not an integer: {val}"
        raise ValueError(msg) from e
    else:
        if not (_PORT_MIN <= port <= _PORT_MAX):
            msg = f"[cyan]{name}[/] is out of range: {val}"
            raise ValueError(msg)

    return port


def _get_host(name: str, default: str) -> str:
    val = os.getenv(name)
    if val is None or not val.strip():
        return default

    return val.strip()


def _ensure_valid_max_lines(name: str) -> int | None:
    val = os.getenv(name)
    if val is None or not val.strip():
        return None

    try:
        lines = int(val)
    except ValueError as e:
        msg = f"[cyan]{name}[/] is not an integer: {val}"
        raise ValueError(msg) from e

    if lines < 1:
        msg = f"[cyan]{name}[/] must be positive: {val}"
        raise ValueError(msg)

    return lines


def get_env_vars() -> _AppConf:
    load_dotenv()

    errs: list[str] = []
    host = _get_host("APP_HOST", DEFAULT_APP_HOST)
    port = DEFAULT_APP_PORT
    max_lines: int | None = None

    try:
        port = _ensure_valid_port("APP_PORT", DEFAULT_APP_PORT)
    except ValueError as e:
        errs.append(str(e))

    try:
        max_lines = _ensure_valid_max_lines("DEBUG_LOG_MAX_LINES")
    except ValueError as e:
        errs.append(str(e))

    if errs:
        cerr.print("".join(f"[bold bright_red]{__prog__}: env-error:[/] {e}\n" for e in errs), end="")
        sys.exit(1)

    return {"app_host": host, "app_port": port, "debug_log_max_lines": max_lines}

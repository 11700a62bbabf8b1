from datetime import datetime

from rich.console import Console

# Handles
cout = Console()
cerr = Console(stderr=True)


def time_now_str(ts: datetime | None = None) -> str:
    """Return `ts` (default: now) as `HH:MM:SS.fff`."""
    ts = datetime.now() if ts is None else ts
    return ts.strftime("%H:%M:%S.") + f"{ts.microsecond // 1000:03d}"

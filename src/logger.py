"""
Console + file logging for IssueLens renders.

Every message is printed and appended to the log file with a UTC timestamp.
Warnings (catalog problems, unknown ids) use the same channel with a prefix,
so a render's log reads top to bottom in one place.
"""

import sys
from datetime import datetime, timezone

from settings import LOG_FILE


def _timestamp() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")


def log(message: str, end: str = "\n") -> None:
    """
    Print message and append it to the log file.

    Blank lines are written without a timestamp. A failing log write is
    reported on stderr and never interrupts a render.
    """
    print(message, end=end)

    entry = f"[{_timestamp()}] {message}{end}" if message.strip() else f"{message}{end}"
    try:
        with open(LOG_FILE, "a", encoding="utf-8") as f:
            f.write(entry)
    except IOError as e:
        print(f"Warning: Failed to write to {LOG_FILE}: {e}", file=sys.stderr)


def warn(message: str) -> None:
    log(f" Warning: {message}")


def log_separator(char: str = "=") -> None:
    log(char * 60)


def log_session_start() -> None:
    log_separator()
    log(f"Render session started: {_timestamp()}")
    log_separator()


def log_session_end(rendered: int = 0) -> None:
    log_separator()
    log(f"Render session ended: {_timestamp()} ({rendered} page(s) rendered)")
    log_separator()
    log("")

"""Terminal styling and the warning / success message helpers."""

from __future__ import annotations

import os
import sys

_RESET = "\x1b[0m"
_BOLD = "\x1b[1m"
_RED = "\x1b[31m"
_GREEN = "\x1b[32m"
_BLUE = "\x1b[34m"


def _colors_enabled() -> bool:
    """Decide whether ANSI styling should be emitted on standard output."""
    if os.environ.get("CLICOLOR_FORCE", "0") != "0":
        return True
    stream = sys.stdout
    try:
        is_tty = stream.isatty()
    except (AttributeError, ValueError):
        is_tty = False
    supported = is_tty and os.environ.get("TERM") != "dumb"
    return supported and os.environ.get("CLICOLOR", "1") != "0"


def _style(code: str, text: object) -> str:
    text = str(text)
    if not _colors_enabled():
        return text
    return f"{code}{text}{_RESET}"


def bold(text: object) -> str:
    """Return ``text`` in bold when the terminal supports colours."""
    return _style(_BOLD, text)


def blue(text: object) -> str:
    """Return ``text`` in blue when the terminal supports colours."""
    return _style(_BLUE, text)


def _red(text: object) -> str:
    return _style(_RED, text)


def _green(text: object) -> str:
    return _style(_GREEN, text)


def _no_emoji() -> bool:
    return "NO_EMOJI" in os.environ


def warn(message: str) -> None:
    """Print a red warning line."""
    symbol = "!" if _no_emoji() else "⚠️ "
    print(f"{_red(symbol)} {_red(message)}")


def success(message: str) -> None:
    """Print a green success line."""
    symbol = "✓" if _no_emoji() else "✅"
    print(f"{_green(symbol)} {_green(message)}")
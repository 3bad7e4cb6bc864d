"""ANSI styling for Stencil diagnostics.

Styles are keyed by the role a piece of text plays in an error report
(error code, location, hint, ...) rather than by color. Styling is on when
``FORCE_COLOR`` is set, off when ``NO_COLOR`` is set, and otherwise follows
whether stdout is a terminal.
"""

from __future__ import annotations

import os
import re
import sys
from typing import Literal, TextIO

Role = Literal["code", "location", "hint", "muted", "gutter", "error_line", "caret"]

_CSI = "\x1b["
_RESET = f"{_CSI}0m"

# SGR parameters per role.
_ROLE_SGR: dict[str, str] = {
    "code": "1;91",
    "location": "36",
    "hint": "32",
    "muted": "2",
    "gutter": "33",
    "error_line": "91",
    "caret": "91",
}

_SGR_RE = re.compile(r"\x1b\[[0-9;]*m")


def supports_color(stream: TextIO | None = None) -> bool:
    """Decide whether diagnostics get ANSI styling.

    The environment is read on every call, so tests and long-running
    processes can flip ``NO_COLOR``/``FORCE_COLOR`` at any time.
    """
    if os.environ.get("FORCE_COLOR"):
        return True
    if os.environ.get("NO_COLOR"):
        return False
    target = sys.stdout if stream is None else stream
    isatty = getattr(target, "isatty", None)
    return bool(isatty is not None and isatty())


def style(role: Role, text: str) -> str:
    if not text or not supports_color():
        return text
    return f"{_CSI}{_ROLE_SGR[role]}m{text}{_RESET}"


def strip_colors(text: str) -> str:
    """Drop SGR escape sequences, e.g. before writing a diagnostic to a log."""
    return _SGR_RE.sub("", text)


def format_error_header(code: str | None, message: str) -> str:
    """``S-RUN-001: message``, with the code styled; bare message without one."""
    return f"{style('code', code)}: {message}" if code else message


def format_source_line(lineno: int, content: str, is_error: bool = False) -> str:
    """One numbered snippet line; the failing line is marked with ``>``."""
    gutter = style("gutter", f"{'>' if is_error else ' '}{lineno:>3}")
    return f"{gutter} | {style('error_line' if is_error else 'muted', content)}"

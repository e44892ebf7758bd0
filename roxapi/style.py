"""Terminal styling helpers: ANSI colouring and display-width measuring."""

from __future__ import annotations

import re

from wcwidth import wcswidth, wcwidth

_COLORS = {
    "black": 30,
    "red": 31,
    "green": 32,
    "yellow": 33,
    "blue": 34,
    "magenta": 35,
    "cyan": 36,
    "white": 37,
}

_RESET = "\x1b[0m"
_ANSI_RE = re.compile(r"\x1b\[[0-9;?]*[A-Za-z]")


def style(text, fg=None, bold=False, underline=False):
    """Wrap ``text`` in ANSI escape codes for the given colour and attributes."""
    text = str(text)
    codes = []
    if fg is not None:
        try:
            codes.append(_COLORS[fg])
        except KeyError:
            raise ValueError(f"unknown colour {fg!r}") from None
    if bold:
        codes.append(1)
    if underline:
        codes.append(4)
    if not codes:
        return text
    prefix = "".join(f"\x1b[{code}m" for code in codes)
    return f"{prefix}{text}{_RESET}"


def strip_ansi(text):
    """Remove ANSI escape sequences from ``text``."""
    return _ANSI_RE.sub("", text)


def measure_width(text):
    """Return the number of terminal cells ``text`` occupies, ignoring ANSI codes."""
    plain = strip_ansi(text)
    width = wcswidth(plain)
    if width >= 0:
        return width
    return sum(max(wcwidth(char), 0) for char in plain)
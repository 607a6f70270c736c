"""TTY-aware console coloring for supervisor status lines."""

import sys

_CODES = {
    "red": "\033[91m",
    "green": "\033[92m",
    "yellow": "\033[93m",
    "cyan": "\033[96m",
    "reset": "\033[0m",
}

SEVERITY_COLORS = {
    "success": "green",
    "info": "cyan",
    "progress": "yellow",
    "warning": "red",
    "error": "red",
}


def colored(text, color, stream=None):
    """Wrap ``text`` in ANSI codes when ``stream`` is a terminal."""
    stream = stream or sys.stdout
    isatty = getattr(stream, "isatty", None)
    if not isatty or not isatty():
        return text
    code = _CODES.get(color, "")
    if not code:
        return text
    return f"{code}{text}{_CODES['reset']}"


def print_status(text, severity="info", stream=None):
    """Print one colored status line and flush."""
    stream = stream or sys.stdout
    color = SEVERITY_COLORS.get(severity, "cyan")
    print(colored(text, color, stream=stream), file=stream, flush=True)

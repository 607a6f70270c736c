"""Append-only action log shared by the supervisor threads."""

from datetime import datetime
import os
from pathlib import Path
import threading
import traceback

from flask import has_request_context, request

ROTATE_AT_BYTES = 5 * 1024 * 1024
KEEP_BACKUPS = 5
TRACEBACK_CHARS = 700


def one_line(text):
    """Collapse all whitespace so a value can never split a log entry."""
    return " ".join(str(text or "").split())


def get_origin():
    """Who triggered the action: ``web:<ip>`` inside a control API request, else the thread name."""
    if has_request_context():
        addr = (request.remote_addr or "").strip()
        return f"web:{addr}" if addr else "web"
    return threading.current_thread().name or "nightowl"


class ActionLog:
    """Callable writer for one nightowl log file.

    Entries read ``Oct 17 09:00:01 <nightowl-checker> [nightowl/idle-trigger] empty_checks=2``
    with an optional ``rejected: <reason>`` suffix. Write errors are dropped so a
    full disk never stops the watcher or checker threads.
    """

    def __init__(self, path, display_tz, rotate_at=ROTATE_AT_BYTES, backups=KEEP_BACKUPS):
        self.path = Path(path)
        self.display_tz = display_tz
        self.rotate_at = rotate_at
        self.backups = backups
        self._lock = threading.Lock()

    def format(self, action, command=None, rejection_message=None):
        stamp = datetime.now(tz=self.display_tz).strftime("%b %d %H:%M:%S")
        parts = [f"{stamp} <{one_line(get_origin()) or 'unknown'}> [nightowl/{one_line(action) or 'unknown'}]"]
        if one_line(command):
            parts.append(one_line(command))
        if one_line(rejection_message):
            parts.append(f"rejected: {one_line(rejection_message)}")
        return " ".join(parts)

    def _backup(self, index):
        return self.path.with_name(f"{self.path.name}.{index}")

    def rotate(self):
        """Shift ``<name>.N`` backups up by one once the live file reaches ``rotate_at``."""
        if self.rotate_at <= 0 or self.backups <= 0:
            return
        try:
            if self.path.stat().st_size < self.rotate_at:
                return
        except FileNotFoundError:
            return
        for index in range(self.backups - 1, 0, -1):
            if self._backup(index).exists():
                os.replace(self._backup(index), self._backup(index + 1))
        os.replace(self.path, self._backup(1))

    def __call__(self, action, command=None, rejection_message=None):
        line = self.format(action, command=command, rejection_message=rejection_message)
        try:
            with self._lock:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                self.rotate()
                with self.path.open("a", encoding="utf-8") as f:
                    f.write(line + "\n")
        except OSError:
            pass


def summarize_exception(context, exc):
    """``<context>: <Type>: <message> | traceback: ...`` on one line, traceback truncated."""
    summary = f"{context}: {type(exc).__name__}"
    if one_line(exc):
        summary += f": {one_line(exc)}"
    tb = one_line(" | ".join(traceback.format_exception(type(exc), exc, exc.__traceback__)))
    if tb:
        summary += f" | traceback: {tb[:TRACEBACK_CHARS]}"
    return summary


def make_log_exception(log_action):
    """Return ``log_exception(context, exc)`` that records an ``error`` entry through ``log_action``."""

    def log_exception(context, exc):
        log_action("error", rejection_message=summarize_exception(context, exc))

    return log_exception

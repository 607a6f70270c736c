"""Follow the server log and dispatch every appended line."""

import subprocess
import threading

from nightowl.services import command_dispatcher

TAIL_BIN = "tail"


def dispatch_lines(ctx, lines):
    """Dispatch each non-blank line in order until ``stop_event`` is set."""
    for raw in lines:
        if ctx.stop_event.is_set():
            return
        line = raw.rstrip("\r\n")
        if not line.strip():
            continue
        try:
            command_dispatcher.dispatch(ctx, line)
        except Exception as exc:
            ctx.log_exception("log_command_dispatch", exc)


def follow_log_once(ctx):
    """Run one ``tail -n 0 -F`` session on the log file and dispatch what it prints.

    Lines already in the file are skipped. ``-F`` keeps following across the
    server's log rotation. Returns when tail exits or ``stop_event`` is set.
    """
    path = ctx.settings.log_file
    if not path.exists():
        return
    proc = subprocess.Popen(
        [TAIL_BIN, "-n", "0", "-F", str(path)],
        stdout=subprocess.PIPE,
        stderr=subprocess.DEVNULL,
        text=True,
        encoding="utf-8",
        errors="replace",
        bufsize=1,
    )
    try:
        if proc.stdout:
            dispatch_lines(ctx, proc.stdout)
    finally:
        if proc.poll() is None:
            proc.terminate()


def log_watcher_loop(ctx):
    """Keep a tail session running until ``stop_event`` is set."""
    retry_seconds = ctx.settings.log_retry_seconds
    while not ctx.stop_event.is_set():
        try:
            follow_log_once(ctx)
        except Exception as exc:
            ctx.log_exception("log_watcher_loop", exc)
        if ctx.stop_event.wait(retry_seconds):
            break


def start_log_watcher(ctx):
    """Start the log watcher daemon thread."""
    watcher = threading.Thread(target=log_watcher_loop, args=(ctx,), name="nightowl-log", daemon=True)
    watcher.start()
    return watcher

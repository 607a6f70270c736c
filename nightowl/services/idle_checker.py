"""Periodic player-count sampling that triggers shutdown after sustained emptiness."""

import threading
import time

from nightowl.services import shutdown_coordinator
from nightowl.services.notifier import announce
from nightowl.services.rcon_client import parse_players_online


def enable(ctx):
    """Resume sampling from a clean idle count."""
    state = ctx.state
    with state.checker_lock:
        if state.checker_enabled:
            changed = False
        else:
            state.checker_enabled = True
            state.consecutive_empty_count = 0
            state.checker_generation += 1
            changed = True
    if not changed:
        announce(ctx, "! Player count checker already running", "warning")
        return False
    announce(ctx, "| Starting player count checker", "info")
    return True


def disable(ctx):
    """Pause sampling and reset the idle count. A running countdown is left alone."""
    state = ctx.state
    with state.checker_lock:
        if not state.checker_enabled:
            changed = False
        else:
            state.checker_enabled = False
            state.consecutive_empty_count = 0
            state.checker_generation += 1
            changed = True
    if not changed:
        announce(ctx, "! Player count checker is not running", "warning")
        return False
    announce(ctx, "| Pausing player count checker", "info")
    return True


def sample_once(ctx):
    """Take one occupancy sample and return whether it triggered a shutdown.

    The RCON round trip happens outside ``checker_lock``. A sample is applied
    only if the checker stayed enabled with the same generation while it was
    in flight.
    """
    state = ctx.state
    with state.checker_lock:
        if not state.checker_enabled:
            state.consecutive_empty_count = 0
            return False
        generation = state.checker_generation

    announce(ctx, "| Checking for players", "info", to_server=False)
    output = ctx.run_rcon("list")
    player_count = parse_players_online(output)
    if player_count is None:
        ctx.log_action("idle-check", command="list", rejection_message=f"unrecognised output: {output[:200]}")
        return False

    triggered = False
    with state.checker_lock:
        if not state.checker_enabled or state.checker_generation != generation:
            ctx.log_action("idle-check", command=f"players={player_count}", rejection_message="checker paused mid-sample")
            return False
        state.last_player_count = player_count
        state.last_sample_at = time.time()
        if player_count == 0:
            state.consecutive_empty_count += 1
        else:
            state.consecutive_empty_count = 0
        empties = state.consecutive_empty_count
        if empties > ctx.settings.idle_threshold:
            # Stop sampling so the countdown is not requested again.
            state.checker_enabled = False
            state.consecutive_empty_count = 0
            state.checker_generation += 1
            triggered = True

    if player_count == 0:
        announce(ctx, f"- No players found {empties} time(s) in a row", "progress", to_server=False)
    else:
        announce(ctx, f"- Found {player_count} player(s)", "progress", to_server=False)

    if triggered:
        ctx.log_action("idle-trigger", command=f"empty_checks={empties} threshold={ctx.settings.idle_threshold}")
        shutdown_coordinator.request_shutdown(ctx, on_failure=resume_after_failed_shutdown)
    return triggered


def resume_after_failed_shutdown(ctx):
    """Sample again when an idle-triggered shutdown left the server running."""
    with ctx.state.checker_lock:
        enabled = ctx.state.checker_enabled
    if not enabled:
        enable(ctx)


def idle_checker_loop(ctx):
    """Sample on a fixed cadence until ``stop_event`` is set."""
    interval = ctx.settings.idle_check_interval_seconds
    while not ctx.stop_event.is_set():
        started = time.monotonic()
        try:
            sample_once(ctx)
        except Exception as exc:
            ctx.log_exception("idle_checker_loop", exc)
        remaining = max(0.0, interval - (time.monotonic() - started))
        if ctx.stop_event.wait(remaining):
            break


def start_idle_checker(ctx):
    """Start the idle checker daemon thread."""
    watcher = threading.Thread(target=idle_checker_loop, args=(ctx,), name="nightowl-checker", daemon=True)
    watcher.start()
    return watcher

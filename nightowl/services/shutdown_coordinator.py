"""Cancellable shutdown countdown: stop the server, schedule power-off, exit."""

import subprocess
import threading

from nightowl.services.notifier import announce


def _countdown_active(state, generation):
    with state.shutdown_lock:
        return state.shutdown_in_progress and state.shutdown_generation == generation


def request_shutdown(ctx, on_failure=None):
    """Start the countdown unless one is already running.

    ``on_failure(ctx)`` runs if the countdown ends in an error and the server
    is left running. Returns the countdown thread, or ``None`` when the
    request was a no-op.
    """
    state = ctx.state
    with state.shutdown_lock:
        if state.shutdown_in_progress:
            generation = None
        else:
            state.shutdown_in_progress = True
            state.shutdown_executing = False
            state.shutdown_generation += 1
            generation = state.shutdown_generation

    if generation is None:
        announce(ctx, "! Shutdown procedure already in progress", "warning")
        return None

    announce(ctx, "| Starting shutdown procedure", "info")
    ctx.log_action("shutdown-request", command=f"countdown={ctx.settings.countdown_seconds}s")
    worker = threading.Thread(
        target=run_countdown,
        args=(ctx, generation, on_failure),
        name="nightowl-countdown",
        daemon=True,
    )
    worker.start()
    return worker


def cancel_shutdown(ctx):
    """Clear the in-progress flag so the countdown exits on its next tick."""
    state = ctx.state
    with state.shutdown_lock:
        if not state.shutdown_in_progress:
            outcome = "idle"
        elif state.shutdown_executing:
            outcome = "executing"
        else:
            state.shutdown_in_progress = False
            outcome = "cancelled"

    if outcome == "idle":
        announce(ctx, "! No shutdown to cancel", "warning")
        return False
    if outcome == "executing":
        announce(ctx, "! Shutdown is already executing and cannot be cancelled", "warning")
        return False
    announce(ctx, "| Cancelling shutdown procedure", "info")
    ctx.log_action("shutdown-cancel")
    return True


def run_countdown(ctx, generation, on_failure=None):
    """Count down once per second, then commit and execute the shutdown.

    A cleared flag or a newer generation ends the loop silently; the cancel
    path has already announced itself.
    """
    state = ctx.state
    try:
        for remaining in range(ctx.settings.countdown_seconds, 0, -1):
            if not _countdown_active(state, generation):
                ctx.log_action("shutdown-countdown", command=f"stopped with {remaining}s left")
                return
            announce(ctx, f"- {remaining}s until shutdown", "progress")
            ctx.sleep(1)

        # Commit point: cancel requests after this report "already executing".
        with state.shutdown_lock:
            if not (state.shutdown_in_progress and state.shutdown_generation == generation):
                ctx.log_action("shutdown-countdown", command="stopped with 0s left")
                return
            state.shutdown_executing = True

        execute_shutdown(ctx)
    except Exception as exc:
        ctx.log_exception("shutdown_countdown", exc)
        with state.shutdown_lock:
            if state.shutdown_generation == generation:
                state.shutdown_in_progress = False
                state.shutdown_executing = False
        announce(ctx, "! Shutdown failed, server left running", "error", to_server=False)
        if on_failure is not None:
            on_failure(ctx)


def execute_shutdown(ctx):
    """Stop the managed server, schedule host power-off and release the main thread."""
    announce(ctx, "| Executing shutdown", "info")
    ctx.run_rcon("stop")
    ctx.log_action("shutdown-stop", command="stop")
    schedule_poweroff(ctx)
    ctx.exit_code = 0
    ctx.stop_event.set()


def schedule_poweroff(ctx):
    """Schedule the host power-off; failures are logged and do not block exit."""
    settings = ctx.settings
    if not settings.poweroff_enabled:
        ctx.log_action("poweroff", rejection_message="Power-off disabled by POWEROFF_ENABLED.")
        return False
    cmd = ["shutdown", f"+{settings.poweroff_delay_minutes}"]
    try:
        result = subprocess.run(cmd, capture_output=True, text=True, timeout=10)
    except Exception as exc:
        ctx.log_exception("schedule_poweroff", exc)
        return False
    if result.returncode != 0:
        detail = ((result.stderr or "") + "\n" + (result.stdout or "")).strip()
        ctx.log_action("poweroff", command=" ".join(cmd), rejection_message=detail[:400] or "shutdown command failed")
        return False
    ctx.log_action("poweroff", command=" ".join(cmd))
    return True

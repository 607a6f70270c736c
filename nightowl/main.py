"""Idle-server supervisor for a Minecraft server.

This process:
- Samples the player count over RCON and shuts the server down once it stays empty
- Accepts ``nightowl <command>`` lines typed in game chat via the server log
- Runs a cancellable 15 second countdown before ``stop`` and host power-off
"""

import signal
import sys

from nightowl.core.console import print_status
from nightowl.core.errors import StartupError
from nightowl.core.logging_setup import build_loggers
from nightowl.core.settings import load_settings
from nightowl.services.bootstrap import boot_steps, run_boot_steps
from nightowl.services.rcon_client import make_rcon_runner
from nightowl.state import SupervisorContext, SupervisorState

MAIN_WAIT_SECONDS = 10


def build_context(settings):
    """Wire settings, loggers and the RCON runner into a fresh context."""
    log_action, log_system, log_exception = build_loggers(settings.display_tz, settings.log_dir)
    ctx = SupervisorContext(
        settings=settings,
        state=SupervisorState(),
        run_rcon=make_rcon_runner(settings, log_exception),
        log_action=log_action,
        log_exception=log_exception,
    )
    return ctx, log_system


def boot_diagnostics(settings):
    """Return a one-line snapshot of the resolved startup settings."""
    return (
        f"config={settings.config_path} exists={settings.config_path.exists()}; "
        f"log_file={settings.log_file} exists={settings.log_file.exists()}; "
        f"rcon={settings.rcon_host}:{settings.rcon_port} password_set={bool(settings.rcon_password)}; "
        f"interval={settings.idle_check_interval_seconds:g}s threshold={settings.idle_threshold}; "
        f"poweroff={settings.poweroff_enabled} delay={settings.poweroff_delay_minutes}m; "
        f"web={settings.web_enabled}"
    )


def install_signal_handlers(ctx):
    """Release the main thread on SIGINT/SIGTERM without touching the server."""

    def _handle(signum, _frame):
        ctx.log_action("signal", command=signal.Signals(signum).name)
        ctx.exit_code = 128 + signum
        ctx.stop_event.set()

    signal.signal(signal.SIGINT, _handle)
    signal.signal(signal.SIGTERM, _handle)


def run_supervisor(argv=None):
    """Boot the supervisor, block until shutdown or signal, return the exit code."""
    try:
        settings = load_settings(argv)
    except StartupError as exc:
        print_status(f"! {exc}", "error", stream=sys.stderr)
        return 1
    ctx, log_system = build_context(settings)
    log_system("boot", command=boot_diagnostics(settings))
    install_signal_handlers(ctx)
    try:
        run_boot_steps(boot_steps(ctx), log_system, ctx.log_exception)
    except Exception as exc:
        print_status(f"! {exc}", "error", stream=sys.stderr)
        ctx.stop_event.set()
        return 1

    while not ctx.stop_event.wait(MAIN_WAIT_SECONDS):
        pass
    log_system("exit", command=f"code={ctx.exit_code}")
    return ctx.exit_code


def main():
    sys.exit(run_supervisor())


if __name__ == "__main__":
    main()

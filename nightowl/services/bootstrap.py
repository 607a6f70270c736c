"""Supervisor boot helpers: startup checks and background thread launch."""

import threading

from nightowl.core.console import print_status
from nightowl.core.errors import StartupError
from nightowl.services import idle_checker
from nightowl.services.log_watcher import start_log_watcher


def verify_rcon(ctx):
    """Run one ``list`` to prove host, port and password work."""
    settings = ctx.settings
    print_status(f"| Connecting to RCON server on {settings.rcon_host}:{settings.rcon_port}", "info")
    try:
        ctx.run_rcon("list")
    except Exception as exc:
        raise StartupError(f"RCON client failed to connect: {exc}") from exc
    print_status("✓ RCON client connected", "success")


def verify_log_file(ctx):
    path = ctx.settings.log_file
    if not path.is_file():
        raise StartupError(f"Logfile {path} does not exist")


def launch_log_watcher(ctx):
    start_log_watcher(ctx)
    print_status("✓ Setup logfile listener", "success")


def launch_idle_checker(ctx):
    idle_checker.enable(ctx)
    idle_checker.start_idle_checker(ctx)


def launch_control_api(ctx):
    """Serve the local control API on a daemon thread when ``WEB_ENABLED``."""
    settings = ctx.settings
    if not settings.web_enabled:
        return None
    from nightowl.routes.control_routes import create_control_app

    app = create_control_app(ctx)
    server = threading.Thread(
        target=app.run,
        kwargs={"host": settings.web_host, "port": settings.web_port, "use_reloader": False},
        name="nightowl-web",
        daemon=True,
    )
    server.start()
    print_status(f"✓ Control API listening on {settings.web_host}:{settings.web_port}", "success")
    return server


def boot_steps(ctx):
    """Return ordered ``(name, callable)`` startup steps; checks come first."""
    return [
        ("verify_rcon", lambda: verify_rcon(ctx)),
        ("verify_log_file", lambda: verify_log_file(ctx)),
        ("start_log_watcher", lambda: launch_log_watcher(ctx)),
        ("start_idle_checker", lambda: launch_idle_checker(ctx)),
        ("start_control_api", lambda: launch_control_api(ctx)),
    ]


def run_boot_steps(steps, log_system, log_exception):
    """Run startup steps in order; the first failure is logged and re-raised."""
    log_system("boot-start")
    for step_name, step_func in steps:
        try:
            step_func()
        except Exception as exc:
            log_exception(f"boot_step/{step_name}", exc)
            log_system("boot-failed", command=step_name, rejection_message=str(exc)[:500] or "startup step failed")
            raise
    log_system("boot-ready")

"""Logging setup helpers."""

from nightowl.core.action_logging import ActionLog, make_log_exception


def build_loggers(display_tz, log_dir):
    """Return ``(log_action, log_system, log_exception)`` writing under ``log_dir``.

    Operator actions go to ``nightowl-actions.log``; boot steps and errors go to ``nightowl.log``.
    """
    log_action = ActionLog(log_dir / "nightowl-actions.log", display_tz)
    log_system = ActionLog(log_dir / "nightowl.log", display_tz)
    return log_action, log_system, make_log_exception(log_system)

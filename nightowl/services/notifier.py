"""Status announcements to the local console and the server chat."""

from nightowl.core.console import print_status

SERVER_TAG = "<nightowl>"


def announce(ctx, message, severity="info", to_server=True):
    """Print ``message`` locally and, when ``to_server``, broadcast it with ``say``.

    Returns ``False`` only when the chat broadcast was attempted and failed. The
    failure is logged and never raised: the action being announced has already
    happened.
    """
    print_status(message, severity)
    ctx.log_action("announce", command=message)
    if not to_server:
        return True
    try:
        ctx.run_rcon(f"say {SERVER_TAG} {message}")
    except Exception as exc:
        ctx.log_exception("announce/say", exc)
        ctx.log_action("notify-rcon", command=message, rejection_message=f"chat broadcast failed: {exc}")
        return False
    return True

"""Map server log lines to an operator command."""

import enum

from nightowl.services import idle_checker
from nightowl.services import shutdown_coordinator
from nightowl.services.notifier import SERVER_TAG, announce

# Lines relayed from the web map chat bridge carry this marker and are never trusted.
WEB_RELAY_MARKER = "WEB"
# Our own chat broadcasts are echoed back into the log; never act on them.
SELF_ECHO_MARKER = SERVER_TAG


class LogCommand(enum.Enum):
    SLEEP = "sleep"
    CANCEL = "cancel"
    RESUME = "resume"
    PAUSE = "pause"
    HELP = "help"
    NONE = "none"


# Match order matters: the first trigger found in the line wins.
TRIGGERS = (
    ("nightowl sleep", LogCommand.SLEEP, "Start the shutdown countdown"),
    ("nightowl cancel", LogCommand.CANCEL, "Cancel a running shutdown countdown"),
    ("nightowl resume", LogCommand.RESUME, "Resume the player count checker"),
    ("nightowl pause", LogCommand.PAUSE, "Pause the player count checker"),
    ("nightowl help", LogCommand.HELP, "List nightowl commands"),
)


def parse_log_command(line):
    """Classify one log line; relayed or unrelated lines map to ``NONE``."""
    if not line or WEB_RELAY_MARKER in line:
        return LogCommand.NONE
    if SELF_ECHO_MARKER in line:
        return LogCommand.NONE
    for phrase, command, _ in TRIGGERS:
        if phrase in line:
            return command
    return LogCommand.NONE


def help_lines():
    return [f"{phrase} - {description}" for phrase, _, description in TRIGGERS]


def announce_help(ctx):
    for line in help_lines():
        announce(ctx, line, "info")


def dispatch(ctx, line):
    """Run the action for one log line and return the matched command."""
    command = parse_log_command(line)
    if command is LogCommand.NONE:
        return command
    ctx.log_action("log-command", command=command.value)
    if command is LogCommand.SLEEP:
        shutdown_coordinator.request_shutdown(ctx)
    elif command is LogCommand.CANCEL:
        shutdown_coordinator.cancel_shutdown(ctx)
    elif command is LogCommand.RESUME:
        idle_checker.enable(ctx)
    elif command is LogCommand.PAUSE:
        idle_checker.disable(ctx)
    elif command is LogCommand.HELP:
        announce_help(ctx)
    return command

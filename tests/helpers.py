from pathlib import Path
from types import SimpleNamespace
from unittest.mock import Mock

from nightowl.state import SupervisorContext, SupervisorState

LIST_EMPTY = "There are 0 of a max of 20 players online: "
LIST_TWO = "There are 2 of a max of 20 players online: Alex, Steve"


def make_settings(**overrides):
    values = {
        "countdown_seconds": 15,
        "idle_threshold": 2,
        "idle_check_interval_seconds": 60.0,
        "log_retry_seconds": 1.0,
        "log_file": Path("logs/latest.log"),
        "poweroff_enabled": True,
        "poweroff_delay_minutes": 5,
        "rcon_host": "localhost",
        "rcon_port": 25575,
        "web_enabled": False,
        "web_host": "127.0.0.1",
        "web_port": 8765,
    }
    values.update(overrides)
    return SimpleNamespace(**values)


def make_ctx(run_rcon=None, sleep=None, **setting_overrides):
    return SupervisorContext(
        settings=make_settings(**setting_overrides),
        state=SupervisorState(),
        run_rcon=run_rcon or Mock(return_value=""),
        log_action=Mock(),
        log_exception=Mock(),
        sleep=sleep or Mock(),
    )


def said_messages(run_rcon):
    """Return the chat text of every ``say`` command sent through ``run_rcon``."""
    messages = []
    for call in run_rcon.call_args_list:
        command = call.args[0]
        if command.startswith("say <nightowl> "):
            messages.append(command[len("say <nightowl> "):])
    return messages

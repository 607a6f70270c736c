"""Typed supervisor runtime state containers."""
from dataclasses import dataclass, field
import threading
import time
from typing import Any, Callable


@dataclass
class SupervisorState:
    """Shared control flags mutated by the watcher, checker and countdown threads.

    ``shutdown_lock`` guards the shutdown group and ``checker_lock`` guards the
    checker group. The groups are independent; never hold both locks at once.
    """
    shutdown_lock: Any = field(default_factory=threading.Lock)
    shutdown_in_progress: bool = False
    shutdown_executing: bool = False
    shutdown_generation: int = 0
    checker_lock: Any = field(default_factory=threading.Lock)
    checker_enabled: bool = False
    consecutive_empty_count: int = 0
    checker_generation: int = 0
    last_player_count: Any = None
    last_sample_at: Any = None

    def snapshot(self):
        """Return a dict view of both field groups, each read under its own lock."""
        with self.shutdown_lock:
            shutdown = {
                "shutdown_in_progress": self.shutdown_in_progress,
                "shutdown_executing": self.shutdown_executing,
            }
        with self.checker_lock:
            checker = {
                "checker_enabled": self.checker_enabled,
                "consecutive_empty_count": self.consecutive_empty_count,
                "last_player_count": self.last_player_count,
                "last_sample_at": self.last_sample_at,
            }
        return {**shutdown, **checker}


@dataclass
class SupervisorContext:
    """Explicit dependencies passed to every service function as ``ctx``."""
    settings: Any
    state: SupervisorState
    run_rcon: Callable[[str], str]
    log_action: Callable[..., None]
    log_exception: Callable[[str, BaseException], None]
    stop_event: Any = field(default_factory=threading.Event)
    sleep: Callable[[float], None] = time.sleep
    exit_code: int = 0

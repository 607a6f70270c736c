"""Startup settings: command-line flags layered over the config file over defaults."""

import argparse
from dataclasses import dataclass
from pathlib import Path
from zoneinfo import ZoneInfo

from nightowl.core.supervisor_config import CONFIG_KEYS, SupervisorConfig

DEFAULT_CONFIG_FILE = "nightowl.env"
DEFAULT_LOG_FILE = CONFIG_KEYS["LOG_FILE"].default
DEFAULT_CHECK_INTERVAL_MINUTES = CONFIG_KEYS["IDLE_CHECK_INTERVAL_MINUTES"].default
DEFAULT_IDLE_THRESHOLD = CONFIG_KEYS["IDLE_THRESHOLD"].default
COUNTDOWN_SECONDS = 15


@dataclass(frozen=True)
class Settings:
    """Immutable supervisor settings resolved once at startup."""
    config_path: Path
    rcon_host: str
    rcon_port: int
    rcon_password: str
    rcon_timeout_seconds: float
    mcrcon_bin: str
    log_file: Path
    idle_check_interval_seconds: float
    idle_threshold: int
    log_retry_seconds: float
    countdown_seconds: int
    poweroff_enabled: bool
    poweroff_delay_minutes: int
    log_dir: Path
    display_tz: ZoneInfo
    web_enabled: bool
    web_host: str
    web_port: int


def build_arg_parser():
    """Return the argparse parser for the ``nightowl`` command."""
    parser = argparse.ArgumentParser(
        prog="nightowl",
        description="Shut down an idle game server and accept commands from its log file.",
    )
    parser.add_argument("-f", "--file", dest="log_file", help=f"Log file to watch (default {DEFAULT_LOG_FILE})")
    parser.add_argument(
        "-t",
        "--time",
        dest="interval_minutes",
        type=float,
        help=f"Minutes between player count checks (default {DEFAULT_CHECK_INTERVAL_MINUTES:g})",
    )
    parser.add_argument(
        "-n",
        "--threshold",
        dest="idle_threshold",
        type=int,
        help="Shut down after more than this many consecutive empty checks (default %d)" % DEFAULT_IDLE_THRESHOLD,
    )
    parser.add_argument(
        "-c",
        "--config",
        dest="config",
        default=DEFAULT_CONFIG_FILE,
        help=f"KEY=VALUE file containing RCON config (default {DEFAULT_CONFIG_FILE})",
    )
    parser.add_argument("--host", dest="rcon_host", help="RCON host")
    parser.add_argument("--port", dest="rcon_port", type=int, help="RCON port")
    parser.add_argument("--password", dest="rcon_password", help="RCON password")
    return parser


def read_server_properties(path):
    """Parse ``server.properties`` into a dict; empty on read failure."""
    kv = {}
    try:
        lines = Path(path).read_text(encoding="utf-8", errors="ignore").splitlines()
    except OSError:
        return kv
    for raw in lines:
        line = raw.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        kv[key.strip()] = value.strip()
    return kv


def server_properties_candidates(log_file):
    """Return likely ``server.properties`` locations for a watched log file."""
    log_file = Path(log_file)
    candidates = [log_file.parent.parent / "server.properties", Path.cwd() / "server.properties"]
    unique = []
    for path in candidates:
        if path not in unique:
            unique.append(path)
    return unique


def resolve_rcon_from_server_properties(log_file):
    """Return ``(password, port)`` from the first RCON-enabled server.properties."""
    for path in server_properties_candidates(log_file):
        if not path.exists():
            continue
        kv = read_server_properties(path)
        if kv.get("enable-rcon", "").lower() == "false":
            continue
        password = kv.get("rcon.password", "").strip()
        if not password:
            continue
        port = int(kv["rcon.port"]) if kv.get("rcon.port", "").isdigit() else None
        return password, port
    return None, None


def load_settings(argv=None):
    """Parse ``argv`` and merge it over the config file and defaults.

    Raises ``StartupError`` when the config file exists but is unreadable or invalid.
    """
    args = build_arg_parser().parse_args(argv)
    config_path = Path(args.config)
    cfg = SupervisorConfig.load(config_path)

    log_file = Path(args.log_file) if args.log_file else cfg.get("LOG_FILE")

    rcon_port = cfg.get("RCON_PORT")
    rcon_password = cfg.get("RCON_PASSWORD")
    if args.rcon_password is not None:
        rcon_password = args.rcon_password
    elif not rcon_password:
        # Fall back to the managed server's own RCON settings.
        props_password, props_port = resolve_rcon_from_server_properties(log_file)
        if props_password:
            rcon_password = props_password
            if props_port and not cfg.has("RCON_PORT"):
                rcon_port = props_port
    if args.rcon_port is not None:
        rcon_port = args.rcon_port

    interval_minutes = cfg.get("IDLE_CHECK_INTERVAL_MINUTES")
    if args.interval_minutes is not None:
        interval_minutes = args.interval_minutes
    idle_threshold = cfg.get("IDLE_THRESHOLD")
    if args.idle_threshold is not None:
        idle_threshold = max(0, args.idle_threshold)

    return Settings(
        config_path=config_path,
        rcon_host=args.rcon_host or cfg.get("RCON_HOST"),
        rcon_port=rcon_port,
        rcon_password=rcon_password,
        rcon_timeout_seconds=cfg.get("RCON_TIMEOUT_SECONDS"),
        mcrcon_bin=cfg.get("MCRCON_BIN"),
        log_file=log_file,
        idle_check_interval_seconds=max(1.0, interval_minutes * 60.0),
        idle_threshold=idle_threshold,
        log_retry_seconds=cfg.get("LOG_RETRY_SECONDS"),
        countdown_seconds=COUNTDOWN_SECONDS,
        poweroff_enabled=cfg.get("POWEROFF_ENABLED"),
        poweroff_delay_minutes=cfg.get("POWEROFF_DELAY_MINUTES"),
        log_dir=cfg.get("SUPERVISOR_LOG_DIR"),
        display_tz=cfg.get("DISPLAY_TZ"),
        web_enabled=cfg.get("WEB_ENABLED"),
        web_host=cfg.get("WEB_HOST"),
        web_port=cfg.get("WEB_PORT"),
    )

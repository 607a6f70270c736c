"""The nightowl config file: its known keys and their typed values."""

from pathlib import Path
from typing import Any, NamedTuple, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from nightowl.core.errors import StartupError

TRUE_VALUES = {"1", "true", "yes", "on"}
FALSE_VALUES = {"0", "false", "no", "off"}


class ConfigKey(NamedTuple):
    kind: str
    default: Any
    minimum: Optional[float] = None
    maximum: Optional[float] = None


CONFIG_KEYS = {
    "RCON_HOST": ConfigKey("str", "localhost"),
    "RCON_PORT": ConfigKey("int", 25575, 1, 65535),
    "RCON_PASSWORD": ConfigKey("str", ""),
    "RCON_TIMEOUT_SECONDS": ConfigKey("float", 8.0, 1.0),
    "MCRCON_BIN": ConfigKey("str", ""),
    "LOG_FILE": ConfigKey("path", Path("logs/latest.log")),
    "LOG_RETRY_SECONDS": ConfigKey("float", 1.0, 0.1),
    "IDLE_CHECK_INTERVAL_MINUTES": ConfigKey("float", 30.0, 0.0),
    "IDLE_THRESHOLD": ConfigKey("int", 1, 0),
    "POWEROFF_ENABLED": ConfigKey("bool", True),
    "POWEROFF_DELAY_MINUTES": ConfigKey("int", 5, 0),
    "SUPERVISOR_LOG_DIR": ConfigKey("path", Path("nightowl-logs")),
    "DISPLAY_TZ": ConfigKey("tz", ZoneInfo("UTC")),
    "WEB_ENABLED": ConfigKey("bool", False),
    "WEB_HOST": ConfigKey("str", "127.0.0.1"),
    "WEB_PORT": ConfigKey("int", 8765, 1, 65535),
}


def split_config_lines(text):
    """Yield ``(line_number, key, value)`` for each assignment; quotes are stripped."""
    for number, raw in enumerate(text.splitlines(), start=1):
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        if "=" not in line:
            yield number, line, None
            continue
        key, value = (part.strip() for part in line.split("=", 1))
        if len(value) >= 2 and value[0] == value[-1] and value[0] in {"'", '"'}:
            value = value[1:-1]
        yield number, key, value


def _check_range(key, number):
    if key.minimum is not None and number < key.minimum:
        raise ValueError(f"must be >= {key.minimum:g}")
    if key.maximum is not None and number > key.maximum:
        raise ValueError(f"must be <= {key.maximum:g}")
    return number


def parse_value(key, raw, base_dir):
    """Convert one raw string for ``key``; raises ``ValueError`` with a short reason."""
    if key.kind == "str":
        return raw
    if key.kind == "int":
        try:
            number = int(raw)
        except ValueError:
            raise ValueError(f"expected a whole number, got {raw!r}") from None
        return _check_range(key, number)
    if key.kind == "float":
        try:
            number = float(raw)
        except ValueError:
            raise ValueError(f"expected a number, got {raw!r}") from None
        return _check_range(key, number)
    if key.kind == "bool":
        lowered = raw.lower()
        if lowered in TRUE_VALUES:
            return True
        if lowered in FALSE_VALUES:
            return False
        raise ValueError(f"expected true or false, got {raw!r}")
    if key.kind == "path":
        path = Path(raw)
        return path if path.is_absolute() else base_dir / path
    if key.kind == "tz":
        try:
            return ZoneInfo(raw)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"unknown time zone {raw!r}") from None
    raise ValueError(f"unsupported kind {key.kind}")


class SupervisorConfig:
    """Typed values read from a nightowl KEY=VALUE file.

    Blank values mean "use the default". A missing file is the same as an
    empty one. A file that exists but cannot be read, or that holds unknown
    keys or bad values, raises ``StartupError`` naming every problem.
    Relative paths resolve from the config file's directory.
    """

    def __init__(self, config_path, values=None):
        self.config_path = Path(config_path)
        self.values = dict(values or {})

    @classmethod
    def load(cls, config_path):
        config_path = Path(config_path)
        if not config_path.exists():
            return cls(config_path)
        try:
            text = config_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise StartupError(f"Config file {config_path} could not be read: {exc}") from exc

        values = {}
        problems = []
        for number, name, raw in split_config_lines(text):
            key = CONFIG_KEYS.get(name)
            if raw is None:
                problems.append(f"line {number}: expected KEY=VALUE")
            elif key is None:
                problems.append(f"line {number}: unknown key {name}")
            elif raw:
                try:
                    values[name] = parse_value(key, raw, config_path.parent)
                except ValueError as exc:
                    problems.append(f"line {number}: {name} {exc}")
        if problems:
            raise StartupError(f"Config file {config_path} is invalid: " + "; ".join(problems))
        return cls(config_path, values)

    def has(self, name):
        return name in self.values

    def get(self, name):
        if name in self.values:
            return self.values[name]
        return CONFIG_KEYS[name].default

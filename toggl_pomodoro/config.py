"""
Configuration and constants for toggl_pomodoro.
All paths and tuneable values live here.
"""

import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .errors import ConfigError

# === FILE PATHS ===
CONFIG_FILE = Path.home() / ".config" / "toggl-pomodoro" / "config.yaml"
SOCKET_NAME = "toggl-pomodoro.sock"

# === TOGGL ===
TOGGL_URL = "https://api.track.toggl.com/api/v9/me/time_entries"
FETCH_TIMEOUT = 10  # seconds

# === TIMER ===
REFRESH_INTERVAL = 3  # seconds between refreshes
STREAK_GAP_SECONDS = 120  # a longer pause between entries ends the streak

# === NOTIFICATIONS ===
APP_NAME = "toggl-pomodoro"
MAIL_FROM = "toggl-pomodoro@localhost"
TASK_SWITCH_MESSAGE = "Switch to the next task"


@dataclass(frozen=True)
class PomodoroConfig:
    pomodoro_min: int = 25
    short_break_min: int = 5
    long_break_min: int = 15
    long_break_after: int = 4


@dataclass(frozen=True)
class EscalationConfig:
    """Seconds of overrun after which the 2nd and 3rd reminders fire."""

    second_after: int = 300
    third_after: int = 1800


@dataclass(frozen=True)
class NotificationConfig:
    desktop: bool = False
    slack: Optional[str] = None
    mail: Optional[str] = None
    mail_from: str = MAIL_FROM


@dataclass(frozen=True)
class FormatConfig:
    idle: str = "idle"
    work: str = "Work {count}[{remaining_time}{task}]"
    break_: str = "Break {count}[{remaining_time}{task}]"
    overwork: str = "Work {count}[{remaining_time}{task}]"
    overbreak: str = "Break {count}[{remaining_time}{task}]"
    task_work: str = "|{remaining_time}"
    task_break: str = "|{remaining_time}"
    task_overwork: str = "|{remaining_time}"
    task_overbreak: str = "|{remaining_time}"

    def template(self, key: str) -> str:
        # "break" is a keyword, so that one field carries a trailing underscore
        return getattr(self, "break_" if key == "break" else key)


@dataclass(frozen=True)
class Config:
    toggl_token: str
    socket: Optional[str] = None
    interval: float = REFRESH_INTERVAL
    notification: NotificationConfig = field(default_factory=NotificationConfig)
    pomodoro: PomodoroConfig = field(default_factory=PomodoroConfig)
    escalation: EscalationConfig = field(default_factory=EscalationConfig)
    format: FormatConfig = field(default_factory=FormatConfig)


# === LOADING ===

_PLACEHOLDERS = {"count": 0, "remaining_time": "", "remaining_time_abs": "", "task": ""}


def _section(cls, data: Any, name: str):
    """Build one config dataclass from a mapping, rejecting unknown keys."""
    if data is None:
        return cls()
    if not isinstance(data, dict):
        raise ConfigError(f"[{name}] must be a mapping")
    known = {f.name.rstrip("_"): f.name for f in fields(cls)}
    kwargs = {}
    for key, value in data.items():
        if key not in known:
            raise ConfigError(f"Unknown key '{key}' in [{name}]")
        kwargs[known[key]] = value
    try:
        return cls(**kwargs)
    except TypeError as e:
        raise ConfigError(f"Invalid [{name}] section: {e}") from e


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _validate(config: Config) -> None:
    p = config.pomodoro
    for name in ("pomodoro_min", "short_break_min", "long_break_min", "long_break_after"):
        value = getattr(p, name)
        if not _is_int(value) or value <= 0:
            raise ConfigError(f"pomodoro.{name} must be a positive integer, got {value!r}")
    e = config.escalation
    if not (_is_int(e.second_after) and _is_int(e.third_after)):
        raise ConfigError("escalation thresholds must be integers")
    if not 0 <= e.second_after <= e.third_after:
        raise ConfigError("escalation thresholds must satisfy 0 <= second_after <= third_after")
    if isinstance(config.interval, bool) or not isinstance(config.interval, (int, float)) or config.interval <= 0:
        raise ConfigError("interval must be positive")
    n = config.notification
    if not isinstance(n.desktop, bool):
        raise ConfigError(f"notification.desktop must be true or false, got {n.desktop!r}")
    for name in ("slack", "mail"):
        value = getattr(n, name)
        if value is not None and not isinstance(value, str):
            raise ConfigError(f"notification.{name} must be a string, got {value!r}")
    if not isinstance(n.mail_from, str):
        raise ConfigError(f"notification.mail_from must be a string, got {n.mail_from!r}")
    for f in fields(FormatConfig):
        template = getattr(config.format, f.name)
        if not isinstance(template, str):
            raise ConfigError(f"format.{f.name.rstrip('_')} must be a string")
        try:
            template.format(**_PLACEHOLDERS)
        except (KeyError, IndexError, ValueError) as err:
            raise ConfigError(f"Bad template format.{f.name.rstrip('_')}: {template!r} ({err})") from err


def parse_config(data: Dict[str, Any]) -> Config:
    if not isinstance(data, dict):
        raise ConfigError("Config file must contain a mapping")
    data = dict(data)
    token = data.pop("toggl_token", None)
    if not token:
        raise ConfigError("toggl_token is required")
    data.pop("version", None)

    config = Config(
        toggl_token=str(token),
        socket=data.pop("socket", None),
        interval=data.pop("interval", REFRESH_INTERVAL),
        notification=_section(NotificationConfig, data.pop("notification", None), "notification"),
        pomodoro=_section(PomodoroConfig, data.pop("pomodoro", None), "pomodoro"),
        escalation=_section(EscalationConfig, data.pop("escalation", None), "escalation"),
        format=_section(FormatConfig, data.pop("format", None), "format"),
    )
    if data:
        raise ConfigError(f"Unknown config keys: {', '.join(sorted(data))}")
    _validate(config)
    return config


def load_config(path=CONFIG_FILE) -> Config:
    """Read and validate the YAML config file."""
    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ConfigError(f"Cannot read config {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Cannot parse config {path}: {e}") from e
    return parse_config(data or {})


def default_socket_path() -> Path:
    runtime_dir = os.environ.get("XDG_RUNTIME_DIR")
    if runtime_dir:
        return Path(runtime_dir) / SOCKET_NAME
    return Path.home() / ("." + SOCKET_NAME)


def socket_path(config: Optional[Config], override: Optional[str] = None) -> Path:
    """Command line wins over the config file, which wins over the default."""
    if override:
        return Path(override)
    if config is not None and config.socket:
        return Path(config.socket).expanduser()
    return default_socket_path()

"""
Configuration Management - YAML settings with environment overrides
===================================================================

This module handles all configuration aspects including:
- Loading the settings file from YAML
- Environment variable overrides
- Default values
- Validation
- Writing a default settings file
"""

import os
import shutil
from pathlib import Path
from typing import Any, Dict, Optional
from dataclasses import dataclass, field, asdict, fields

import yaml

from .exceptions import ConfigError
from .logging import get_logger

logger = get_logger("config")

SETTINGS_FILENAME = "settings.yaml"


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


@dataclass
class BridgeConfig:
    """
    HTTP bridge transport configuration.

    Inbound messages are POSTed to the bridge server; replies are
    POSTed to `send_url`.
    """
    host: str = "127.0.0.1"
    port: int = 8080
    send_url: str = ""
    timeout: float = 10.0

    def validate(self) -> None:
        if not isinstance(self.port, int) or self.port < 1 or self.port > 65535:
            raise ConfigError(f"Invalid bridge port: {self.port}")
        if not isinstance(self.host, str) or not isinstance(self.send_url, str):
            raise ConfigError("bridge.host and bridge.send_url must be strings")
        if not _is_number(self.timeout) or self.timeout <= 0:
            raise ConfigError(f"bridge.timeout must be a positive number, got {self.timeout!r}")


@dataclass
class LoggingConfig:
    """Log level and optional JSON log file."""
    level: str = "INFO"
    json_file: str = ""

    def validate(self) -> None:
        levels = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
        if not isinstance(self.level, str) or self.level.upper() not in levels:
            raise ConfigError(f"Invalid log level: {self.level!r}")
        if self.json_file is not None and not isinstance(self.json_file, str):
            raise ConfigError("logging.json_file must be a path string")


def default_shell() -> str:
    """Prefer bash so `exit -1` works in shell actions, else POSIX sh."""
    return shutil.which("bash") or "/bin/sh"


@dataclass
class Settings:
    """
    Main settings container.

    Aggregates all configuration sections into a single object.
    The `actions` field holds the raw static action definitions
    (`include` and `on_message`); they are parsed by the rules package.
    """
    # The name of the bot, also used to ignore its own messages
    name: str = "SimpleBot"
    disconnect_message: str = "Disconnecting"
    # How many responses can be sent per second
    rate_limit: int = 2
    # Prefix for builtin commands
    prefix: str = "."
    # Dynamically added actions; this file is overwritten automatically
    dynamic_actions: str = "dynamic.yaml"
    shell: str = field(default_factory=default_shell)
    # Seconds before a command or shell action is killed, None = no limit
    command_timeout: Optional[float] = None

    actions: Dict[str, Any] = field(default_factory=dict)
    bridge: BridgeConfig = field(default_factory=BridgeConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def validate(self) -> None:
        """
        Validate all settings.

        Raises:
            ConfigError: If any value is invalid
        """
        if isinstance(self.rate_limit, bool) or not isinstance(self.rate_limit, int) or self.rate_limit < 1:
            raise ConfigError(f"rate_limit must be a whole number of at least 1, got {self.rate_limit!r}")
        for key in ("name", "prefix", "disconnect_message"):
            if not isinstance(getattr(self, key), str):
                raise ConfigError(f"{key} must be a string")
        if not isinstance(self.shell, str) or not self.shell.strip():
            raise ConfigError("shell must name a shell program")
        if not self.prefix:
            raise ConfigError("prefix must not be empty")
        if not isinstance(self.dynamic_actions, str) or not self.dynamic_actions:
            raise ConfigError("dynamic_actions must name a file")
        if self.command_timeout is not None and (
            not _is_number(self.command_timeout) or self.command_timeout <= 0
        ):
            raise ConfigError(f"command_timeout must be positive, got {self.command_timeout}")
        if not isinstance(self.actions, dict):
            raise ConfigError("actions must be a mapping with 'on_message' and 'include'")
        self.bridge.validate()
        self.logging.validate()

    def to_dict(self) -> Dict[str, Any]:
        """Convert settings to dictionary."""
        data = asdict(self)
        if data["command_timeout"] is None:
            del data["command_timeout"]
        return data


def get_default_config_dir() -> Path:
    """
    Get the default configuration directory path.

    Returns:
        Path to the configuration directory
    """
    if "SIMPLE_BOT_CONFIG_DIR" in os.environ:
        return Path(os.environ["SIMPLE_BOT_CONFIG_DIR"])

    if "XDG_CONFIG_HOME" in os.environ:
        return Path(os.environ["XDG_CONFIG_HOME"]) / "simple-bot"

    return Path.home() / ".config" / "simple-bot"


def resolve_settings_path(settings_path: Optional[str] = None) -> Path:
    """Settings file given on the command line, or the default location."""
    if settings_path:
        return Path(settings_path)
    return get_default_config_dir() / SETTINGS_FILENAME


def resolve_path(base_dir: Path, path: str) -> Path:
    """Resolve `path` against `base_dir` unless it is absolute."""
    candidate = Path(path).expanduser()
    if candidate.is_absolute():
        return candidate
    return base_dir / candidate


def load_settings(settings_path: Path, load_env: bool = True) -> Settings:
    """
    Load settings from a YAML file with environment variable overrides.

    Order of precedence:
    1. Default values from the dataclasses
    2. Values from the YAML file
    3. Environment variable overrides

    A missing file is only a soft error: defaults are used.

    Args:
        settings_path: Path to the settings file
        load_env: Whether to apply environment variable overrides

    Returns:
        Validated Settings

    Raises:
        ConfigError: If the file cannot be parsed or is invalid
    """
    settings = Settings()

    try:
        with open(settings_path, "r", encoding="utf-8") as f:
            yaml_config = yaml.safe_load(f) or {}
    except FileNotFoundError:
        logger.warning(f"Settings file {settings_path} not found, using defaults")
        yaml_config = {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to parse settings: {e}", {"path": str(settings_path)})
    except OSError as e:
        raise ConfigError(f"Failed to read settings: {e}", {"path": str(settings_path)})

    if not isinstance(yaml_config, dict):
        raise ConfigError("Settings file must contain a mapping", {"path": str(settings_path)})

    _apply_yaml_config(settings, yaml_config)

    if load_env:
        _apply_env_overrides(settings)

    settings.validate()
    return settings


def _apply_section(section: Any, values: Any, name: str) -> None:
    if not isinstance(values, dict):
        raise ConfigError(f"'{name}' must be a mapping")
    known = {f.name for f in fields(section)}
    for key, value in values.items():
        if key not in known:
            raise ConfigError(f"Unknown setting '{name}.{key}'")
        setattr(section, key, value)


def _apply_yaml_config(settings: Settings, yaml_config: Dict[str, Any]) -> None:
    """
    Apply YAML values to a Settings object.

    Unknown keys are rejected so typos do not go unnoticed.
    """
    sections = {"bridge", "logging"}
    known = {f.name for f in fields(settings)}

    for key, value in yaml_config.items():
        if key not in known:
            raise ConfigError(f"Unknown setting '{key}'")
        if key in sections:
            _apply_section(getattr(settings, key), value, key)
        elif key == "actions" and value is None:
            settings.actions = {}
        elif key == "shell" and value is None:
            settings.shell = default_shell()
        else:
            setattr(settings, key, value)


def _apply_env_overrides(settings: Settings) -> None:
    """
    Apply environment variable overrides to a Settings object.

    Variables follow the pattern SIMPLE_BOT_<KEY>.
    """
    env_mappings = {
        "SIMPLE_BOT_NAME": ("name", str),
        "SIMPLE_BOT_PREFIX": ("prefix", str),
        "SIMPLE_BOT_RATE_LIMIT": ("rate_limit", int),
        "SIMPLE_BOT_DYNAMIC_ACTIONS": ("dynamic_actions", str),
        "SIMPLE_BOT_SEND_URL": ("bridge.send_url", str),
    }

    for env_var, (path, converter) in env_mappings.items():
        value = os.environ.get(env_var)
        if value is None:
            continue
        try:
            converted = converter(value)
        except ValueError:
            raise ConfigError(f"Invalid value for {env_var}: {value!r}")

        target = settings
        *parents, attr = path.split(".")
        for parent in parents:
            target = getattr(target, parent)
        setattr(target, attr, converted)


def save_settings(settings: Settings, settings_path: Path) -> None:
    """
    Save settings to a YAML file.

    Raises:
        ConfigError: If the file cannot be written
    """
    settings_path.parent.mkdir(parents=True, exist_ok=True)

    try:
        with open(settings_path, "w", encoding="utf-8") as f:
            yaml.safe_dump(settings.to_dict(), f, default_flow_style=False, sort_keys=False)
    except OSError as e:
        raise ConfigError(f"Failed to save settings: {e}", {"path": str(settings_path)})


def create_default_settings(settings_path: Path) -> Settings:
    """
    Write a settings file with defaults and one example action.

    Returns:
        The Settings that were written
    """
    settings = Settings()
    settings.actions = {
        "on_message": [
            {"contains": "hello", "response": "Hello! Type .help for commands."},
        ]
    }
    save_settings(settings, settings_path)
    return settings

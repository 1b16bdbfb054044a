"""
Logging Module - Centralized logging configuration
==================================================

This module provides logging setup and utilities including:
- Colored console output
- Optional JSON log file
- Verbosity levels from the command line
- Logger adapters carrying extra context
"""

import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Dict, Any
import json

ROOT_LOGGER = "simple_bot"

# Attributes every LogRecord has; anything else came in through `extra`
_RECORD_ATTRS = set(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {"message", "asctime"}


def _extra_fields(record: logging.LogRecord) -> Dict[str, Any]:
    return {k: v for k, v in vars(record).items() if k not in _RECORD_ATTRS}


class JSONFormatter(logging.Formatter):
    """
    JSON log formatter for structured logging.

    Outputs log records as JSON objects for easy parsing and
    integration with log aggregation systems.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        extra = _extra_fields(record)
        if extra:
            log_data["data"] = extra

        return json.dumps(log_data, default=str)


class ColoredFormatter(logging.Formatter):
    """
    Colored console formatter for readable terminal output.

    Uses ANSI color codes to highlight different log levels.
    Extra context is appended as key=value pairs.
    """

    COLORS = {
        "DEBUG": "\033[36m",     # Cyan
        "INFO": "\033[32m",      # Green
        "WARNING": "\033[33m",   # Yellow
        "ERROR": "\033[31m",     # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    RESET = "\033[0m"
    BOLD = "\033[1m"

    def __init__(self, use_color: bool = True):
        super().__init__()
        self.use_color = use_color

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")

        if self.use_color:
            color = self.COLORS.get(record.levelname, "")
            level = f"{color}{self.BOLD}[{record.levelname}]{self.RESET}"
        else:
            level = f"[{record.levelname}]"

        formatted = f"{level} {timestamp} | {record.name} | {record.getMessage()}"

        extra = _extra_fields(record)
        if extra:
            formatted += " | " + " ".join(f"{k}={v!r}" for k, v in extra.items())

        if record.exc_info:
            formatted += f"\n{self.formatException(record.exc_info)}"

        return formatted


class LoggerAdapter(logging.LoggerAdapter):
    """
    Custom logger adapter with extra context support.

    Merges the adapter's fixed context with per-call `extra` data.
    """

    def process(self, msg: str, kwargs: Dict[str, Any]) -> tuple:
        extra = dict(self.extra)
        extra.update(kwargs.get("extra") or {})
        kwargs["extra"] = extra
        return msg, kwargs


_loggers: Dict[str, logging.Logger] = {}


def verbosity_to_level(verbose: int) -> str:
    """Map the number of -v flags to a level name."""
    if verbose >= 1:
        return "DEBUG"
    return "INFO"


def setup_logging(
    log_level: str = "INFO",
    json_file: Optional[str] = None,
    console_output: bool = True
) -> None:
    """
    Set up logging configuration for the application.

    Calling it again replaces the handlers, so a reload can change
    the level or the JSON file.

    Args:
        log_level: Minimum log level to capture
        json_file: Path of a JSON lines log file (optional)
        console_output: Output to stderr

    Example:
        setup_logging(log_level="DEBUG", json_file="/var/log/simple-bot.jsonl")
    """
    root_logger = logging.getLogger(ROOT_LOGGER)
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()

    if console_output:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setFormatter(ColoredFormatter(use_color=sys.stderr.isatty()))
        root_logger.addHandler(console_handler)

    if json_file:
        log_path = Path(json_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setFormatter(JSONFormatter())
        root_logger.addHandler(file_handler)


def get_logger(name: str, **extra) -> LoggerAdapter:
    """
    Get a logger instance for a module.

    Args:
        name: Logger name below the application root
        **extra: Extra context to include in all log messages

    Returns:
        LoggerAdapter instance

    Example:
        logger = get_logger("dispatcher")
        logger.info("Message handled", extra={"mode": "channel"})
    """
    full_name = name if name.startswith(ROOT_LOGGER) else f"{ROOT_LOGGER}.{name}"

    if full_name not in _loggers:
        _loggers[full_name] = logging.getLogger(full_name)

    return LoggerAdapter(_loggers[full_name], extra)

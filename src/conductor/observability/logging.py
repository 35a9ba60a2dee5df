"""structlog setup for Conductor.

Every module logs through ``get_logger(__name__)``. Entries are rendered once
by the processor chain and written to stderr and, when file logging is on, to
``<log_dir>/conductor.log`` (rotated at midnight UTC).

Event names use dot notation, ``domain.entity.verb_past_tense``:

    workflow.step.completed    agent.task.reassigned    coordinator.dispatch.deferred

Keys bound with ``bind_context`` (usually ``workflow_id``, ``agent_id`` or
``task_id``) are merged into every entry logged from the same async context.
Values under credential-like keys are replaced with ``<REDACTED>``, since
agent metadata may carry endpoint tokens.

Usage:
    configure_logging(LoggingConfig(mode=LogMode.PROD))
    log = get_logger(__name__)
    bind_context(workflow_id="wf-123")
    log.info("workflow.step.started", step_id="step-1")
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
import logging
from logging.handlers import TimedRotatingFileHandler
import os
from pathlib import Path
import sys
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
import structlog

LOG_FILE_NAME = "conductor.log"
REDACTED = "<REDACTED>"

_CREDENTIAL_MARKERS = ("api_key", "apikey", "api-key", "password", "secret", "token", "credential")
_UNMASKED_KEYS = frozenset({"event", "level", "timestamp", "filename", "lineno"})


class LogMode(str, Enum):
    """How entries are rendered."""

    DEV = "dev"
    PROD = "prod"


class LoggingConfig(BaseModel):
    """Runtime logging settings.

    Attributes:
        mode: ``dev`` renders colored console lines, ``prod`` renders JSON.
        log_level: Minimum level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_dir: Directory of the rotating log file.
        max_log_days: Rotated files kept before deletion.
        enable_file_logging: Also write entries to ``log_dir``.
    """

    model_config = ConfigDict(frozen=True)

    mode: LogMode = LogMode.DEV
    log_level: str = "INFO"
    log_dir: Path = Field(default_factory=lambda: Path.home() / ".conductor" / "logs")
    max_log_days: int = Field(default=7, ge=1, le=365)
    enable_file_logging: bool = False

    @property
    def level(self) -> int:
        return logging.getLevelNamesMapping().get(self.log_level.upper(), logging.INFO)


@dataclass
class _LoggingState:
    config: LoggingConfig | None = None
    file_handler: TimedRotatingFileHandler | None = None
    console: bool = True


_state = _LoggingState()


def _is_credential(key: str) -> bool:
    lowered = key.lower()
    return any(marker in lowered for marker in _CREDENTIAL_MARKERS)


def _redact(value: Any) -> Any:
    if isinstance(value, dict):
        return {
            k: REDACTED if _is_credential(str(k)) else _redact(v) for k, v in value.items()
        }
    if isinstance(value, list):
        return [_redact(v) for v in value]
    return value


def _redact_credentials(_logger: Any, _method: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    for key in event_dict.keys() - _UNMASKED_KEYS:
        if _is_credential(key):
            event_dict[key] = REDACTED
        else:
            event_dict[key] = _redact(event_dict[key])
    return event_dict


def _processors(mode: LogMode) -> list[Any]:
    renderer: Any = (
        structlog.processors.JSONRenderer()
        if mode is LogMode.PROD
        else structlog.dev.ConsoleRenderer(colors=True)
    )
    return [
        structlog.contextvars.merge_contextvars,
        _redact_credentials,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.CallsiteParameterAdder(
            parameters=[
                structlog.processors.CallsiteParameter.FILENAME,
                structlog.processors.CallsiteParameter.LINENO,
            ]
        ),
        structlog.processors.format_exc_info,
        renderer,
    ]


class _TeeLogger:
    """Final structlog logger: stderr when console output is on, plus the file."""

    def __init__(self, file_handler: logging.Handler | None) -> None:
        self._file_handler = file_handler

    def _write(self, level: int, message: str) -> None:
        if _state.console:
            print(message, file=sys.stderr)
        if self._file_handler is not None:
            self._file_handler.emit(
                logging.makeLogRecord(
                    {
                        "name": "conductor",
                        "levelno": level,
                        "levelname": logging.getLevelName(level),
                        "msg": message,
                    }
                )
            )

    def debug(self, message: str) -> None:
        self._write(logging.DEBUG, message)

    def info(self, message: str) -> None:
        self._write(logging.INFO, message)

    def warning(self, message: str) -> None:
        self._write(logging.WARNING, message)

    def error(self, message: str) -> None:
        self._write(logging.ERROR, message)

    def critical(self, message: str) -> None:
        self._write(logging.CRITICAL, message)

    msg = info
    warn = warning
    exception = error
    fatal = critical


def _open_log_file(config: LoggingConfig) -> TimedRotatingFileHandler:
    config.log_dir.mkdir(parents=True, exist_ok=True)
    handler = TimedRotatingFileHandler(
        config.log_dir / LOG_FILE_NAME,
        when="midnight",
        backupCount=config.max_log_days,
        encoding="utf-8",
        utc=True,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    handler.setLevel(config.level)
    return handler


def _close_log_file() -> None:
    handler = _state.file_handler
    if handler is None:
        return
    logging.getLogger().removeHandler(handler)
    handler.close()
    _state.file_handler = None


def _mode_from_env() -> LogMode:
    value = os.environ.get("CONDUCTOR_LOG_MODE", "").lower()
    return LogMode.PROD if value == LogMode.PROD.value else LogMode.DEV


def configure_logging(config: LoggingConfig | None = None) -> None:
    """Install the processor chain and output targets.

    Reconfiguring closes the previous log file.

    Args:
        config: Settings to apply. Defaults to ``LoggingConfig`` with the mode
            read from ``CONDUCTOR_LOG_MODE``.
    """
    config = config or LoggingConfig(mode=_mode_from_env())
    _close_log_file()

    root = logging.getLogger()
    root.setLevel(config.level)
    if config.enable_file_logging:
        _state.file_handler = _open_log_file(config)
        root.addHandler(_state.file_handler)

    file_handler = _state.file_handler
    structlog.configure(
        processors=_processors(config.mode),
        wrapper_class=structlog.make_filtering_bound_logger(config.level),
        context_class=dict,
        logger_factory=lambda *_args: _TeeLogger(file_handler),
        cache_logger_on_first_use=True,
    )
    _state.config = config


def set_console_logging(enabled: bool) -> None:
    """Turn stderr output on or off without touching file logging."""
    _state.console = enabled


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Return a logger, applying the default configuration on first use."""
    if _state.config is None:
        configure_logging()
    return structlog.get_logger(name)


def bind_context(**values: Any) -> None:
    """Add keys to every entry logged from the current async context."""
    structlog.contextvars.bind_contextvars(**values)


def unbind_context(*keys: str) -> None:
    structlog.contextvars.unbind_contextvars(*keys)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()


def get_current_config() -> LoggingConfig | None:
    return _state.config


def is_configured() -> bool:
    return _state.config is not None


def reset_logging() -> None:
    """Forget the configuration and bound context; used between tests."""
    _close_log_file()
    _state.config = None
    structlog.contextvars.clear_contextvars()
    structlog.reset_defaults()


__all__ = [
    "LOG_FILE_NAME",
    "REDACTED",
    "LogMode",
    "LoggingConfig",
    "bind_context",
    "clear_context",
    "configure_logging",
    "get_current_config",
    "get_logger",
    "is_configured",
    "reset_logging",
    "set_console_logging",
    "unbind_context",
]

"""Structured logging for the multiplayer session engine.

Environment variables:
- LOG_FORMAT: "json" for log shipping from the device gateway, "console" or
  unset for human-readable output.
- LOG_LEVEL: "DEBUG", "INFO" (default), "WARNING", "ERROR", or "CRITICAL".

Controllers bind the room they follow (room_code, game, player_id) while
handling a snapshot, so every line logged underneath carries it.
"""

from __future__ import annotations

import logging
import os
import sys
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from collections.abc import MutableMapping
    from typing import Any

LOG_FILE_TIMESTAMP_FORMAT = "%Y-%m-%d_%H-%M-%S"

LOG_FORMATS = ("json", "console")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
ROOM_CONTEXT_KEYS = ("room_code", "game", "player_id")


def _serialize_enums(
    _logger: object,
    _method_name: str,
    event_dict: MutableMapping[str, Any],
) -> MutableMapping[str, Any]:
    """Log enum values (RoomStatus, GameKind, ...) by value, one level deep into dicts."""
    for key, value in event_dict.items():
        if isinstance(value, Enum):
            event_dict[key] = value.value
        elif isinstance(value, dict):
            event_dict[key] = {k: v.value if isinstance(v, Enum) else v for k, v in value.items()}
    return event_dict


def _is_test() -> bool:
    return "pytest" in sys.modules


def configure_structlog() -> None:
    """Route structlog through stdlib logging; handlers decide how lines are rendered."""
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            _serialize_enums,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.UnicodeDecoder(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )


def _env_choice(name: str, default: str, choices: tuple[str, ...]) -> str:
    """Read an enumerated env var case-insensitively; unset or empty means default."""
    value = os.environ.get(name) or default
    normalized = next((choice for choice in choices if choice.lower() == value.lower()), None)
    if value and normalized is None:
        msg = f"Invalid {name}={value!r}. Must be one of {', '.join(choices)}."
        raise ValueError(msg)
    return normalized or default


def _handler(handler: logging.Handler, *, json_mode: bool, colors: bool = False) -> logging.Handler:
    renderer = structlog.processors.JSONRenderer() if json_mode else structlog.dev.ConsoleRenderer(colors=colors)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                structlog.processors.format_exc_info,
                renderer,
            ],
        )
    )
    return handler


def setup_logging(
    log_dir: Path | str | None = None,
    level: int | None = None,
) -> Path | None:
    """Configure engine logging to stdout, plus a dated file in log_dir when given.

    level overrides LOG_LEVEL. Returns the log file path, or None when no
    file was opened (no log_dir, or running under pytest).
    """
    json_mode = _env_choice("LOG_FORMAT", "", LOG_FORMATS) == "json"
    if level is None:
        level = getattr(logging, _env_choice("LOG_LEVEL", "INFO", LOG_LEVELS))

    configure_structlog()
    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()
    stdout_handler = logging.StreamHandler(sys.stdout)
    root_logger.addHandler(_handler(stdout_handler, json_mode=json_mode, colors=sys.stdout.isatty()))

    if log_dir is None or _is_test():
        return None
    dir_path = Path(log_dir)
    dir_path.mkdir(parents=True, exist_ok=True)
    file_path = dir_path / f"{datetime.now(tz=UTC).strftime(LOG_FILE_TIMESTAMP_FORMAT)}.log"
    root_logger.addHandler(_handler(logging.FileHandler(file_path), json_mode=json_mode))
    return file_path


def bind_room_context(**values: str) -> None:
    """Bind room identity to every log line emitted from the current context."""
    unknown = set(values) - set(ROOM_CONTEXT_KEYS)
    if unknown:
        raise ValueError(f"Unknown room context keys: {sorted(unknown)}")
    structlog.contextvars.bind_contextvars(**values)


def clear_room_context() -> None:
    structlog.contextvars.unbind_contextvars(*ROOM_CONTEXT_KEYS)

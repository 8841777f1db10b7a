# src/bosschat/logging_config.py
"""
Logging configuration for the bosschat server.

Sets up the root logger once per process:

- a console handler on stderr at the configured level;
- an optional ``RotatingFileHandler`` when a log file path is configured;
- per-component level overrides so chatty HTTP/SDK libraries stay quiet;
- structlog routed through the same stdlib handlers, with the request id
  bound by the request middleware stamped on every record.

Usage:
    from bosschat.logging_config import configure_logging

    configure_logging(level="INFO", log_file="/var/log/bosschat/server.log")
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Optional

import structlog
from structlog.contextvars import get_contextvars

DEFAULT_LOGGING_CONFIG: dict[str, Any] = {
    "console_format": "%(asctime)s - %(name)s - %(levelname)s - [%(request_id)s] %(message)s",
    "file_format": "%(asctime)s [%(levelname)-8s] %(name)-30s [%(request_id)s] - %(message)s (%(filename)s:%(lineno)d)",
    "rotation_max_bytes": 10 * 1024 * 1024,  # 10 MB
    "rotation_backup_count": 5,
    "components": {
        "bosschat": "DEBUG",
        "uvicorn.access": "WARNING",
        "httpx": "WARNING",
        "httpcore": "WARNING",
        "anthropic": "WARNING",
        "sqlalchemy.engine": "WARNING",
        "asyncio": "WARNING",
        "aiosqlite": "WARNING",
    },
}

_configured = False
_log_file_path: Optional[Path] = None


class RequestIdFilter(logging.Filter):
    """Copies the request id bound in structlog's context onto stdlib records."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = get_contextvars().get("request_id", "-")
        return True


def _resolve_level(level: str | int, default: int = logging.INFO) -> int:
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(level.upper())
    return resolved if isinstance(resolved, int) else default


def configure_logging(
    level: str | int = "INFO",
    log_file: Optional[str] = None,
    config: Optional[dict[str, Any]] = None,
    force_reconfigure: bool = False,
) -> Optional[Path]:
    """
    Configure process-wide logging.

    Args:
        level: Level for the console handler and the ``bosschat`` logger tree.
        log_file: Optional path to a rotating log file.
        config: Overrides merged over ``DEFAULT_LOGGING_CONFIG``.
        force_reconfigure: Reconfigure even if logging was already set up.

    Returns:
        Path of the log file if file logging is active, else None.
    """
    global _configured, _log_file_path
    if _configured and not force_reconfigure:
        return _log_file_path

    log_config = {**DEFAULT_LOGGING_CONFIG, **(config or {})}
    console_level = _resolve_level(level)

    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
        handler.close()
    root_logger.setLevel(logging.DEBUG if log_file else console_level)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(console_level)
    console_handler.setFormatter(logging.Formatter(log_config["console_format"]))
    console_handler.addFilter(RequestIdFilter())
    root_logger.addHandler(console_handler)

    _log_file_path = None
    if log_file:
        file_handler = _create_file_handler(Path(log_file).expanduser(), log_config)
        if file_handler:
            root_logger.addHandler(file_handler)
            _log_file_path = Path(log_file).expanduser()

    for component_name, level_str in log_config["components"].items():
        logging.getLogger(component_name).setLevel(_resolve_level(level_str))
    # without a file handler there is nothing to catch records below the console level
    if not _log_file_path:
        logging.getLogger("bosschat").setLevel(console_level)

    _configure_structlog()

    _configured = True
    logging.getLogger(__name__).debug(f"Logging configured (level={logging.getLevelName(console_level)}, file={_log_file_path})")
    return _log_file_path


def _create_file_handler(log_file_path: Path, config: dict[str, Any]) -> Optional[logging.Handler]:
    try:
        log_file_path.parent.mkdir(parents=True, exist_ok=True)
        handler = RotatingFileHandler(
            log_file_path,
            maxBytes=config["rotation_max_bytes"],
            backupCount=config["rotation_backup_count"],
            encoding="utf-8",
        )
    except (OSError, PermissionError) as e:
        sys.stderr.write(f"Warning: Cannot create log file {log_file_path}: {e}\n")
        return None

    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter(config["file_format"]))
    handler.addFilter(RequestIdFilter())
    return handler


def _configure_structlog() -> None:
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.processors.format_exc_info,
            structlog.processors.KeyValueRenderer(key_order=["event"], drop_missing=True),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def is_configured() -> bool:
    return _configured

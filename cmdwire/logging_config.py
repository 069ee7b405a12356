"""Logging configuration for cmdwire.

cmdwire is a library, so setup_logging() only touches the ``cmdwire``
logger tree and never the root logger. By default records propagate
to whatever handlers the host application installed; file output and
a private console stream are opt-in.

Logger tree (stdlib dotted names, structlog wraps them):
    cmdwire            → <log_dir>/cmdwire.log (combined, optional)
      ├─ cmdwire.registry → <log_dir>/registry.log
      └─ cmdwire.dispatch → <log_dir>/dispatch.log

Events are rendered to a single line by structlog before they reach
stdlib handlers, so host handlers with plain formatters print them
as-is.
"""

import logging
import logging.handlers
import re
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import structlog

SUBSYSTEMS = ("registry", "dispatch")

LOGGER_PREFIX = "cmdwire"

# Marks handlers installed here so repeated setup replaces only those
_OWNED_ATTR = "_cmdwire_owned"

_SECRET_PATTERNS = [
    # Telegram bot tokens (<bot id>:<35 char secret>)
    re.compile(r"\d{6,12}:[A-Za-z0-9_-]{30,}"),
    # Bearer token values in headers
    re.compile(r"Bearer\s+[a-zA-Z0-9_./-]{20,}"),
]

_REDACTED = "***REDACTED***"


def _scrub_value(value: str) -> str:
    for pattern in _SECRET_PATTERNS:
        value = pattern.sub(_REDACTED, value)
    return value


def sanitize_secrets(
    logger: Any, method_name: str, event_dict: Dict[str, Any]
) -> Dict[str, Any]:
    """structlog processor that scrubs bot tokens from event values.

    Handlers and update payloads are logged by name only, but hosts
    often bind client objects whose repr embeds the token URL.
    """
    for key, value in event_dict.items():
        if isinstance(value, str):
            event_dict[key] = _scrub_value(value)
        elif isinstance(value, (list, tuple)):
            event_dict[key] = type(value)(
                _scrub_value(v) if isinstance(v, str) else v
                for v in value
            )
        elif isinstance(value, dict):
            event_dict[key] = {
                k: _scrub_value(v) if isinstance(v, str) else v
                for k, v in value.items()
            }
    return event_dict


def _level(name: Optional[str], default: int) -> int:
    if not name:
        return default
    level = logging.getLevelName(str(name).upper())
    return level if isinstance(level, int) else default


def _own(handler: logging.Handler, level: int) -> logging.Handler:
    setattr(handler, _OWNED_ATTR, True)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter("%(message)s"))
    return handler


def _detach_owned(logger: logging.Logger) -> None:
    """Remove handlers a previous setup_logging() call installed."""
    for handler in list(logger.handlers):
        if getattr(handler, _OWNED_ATTR, False):
            logger.removeHandler(handler)
            handler.close()


def owned_handlers(logger_name: str = LOGGER_PREFIX) -> List[logging.Handler]:
    """Handlers installed by setup_logging() on ``logger_name``."""
    return [h for h in logging.getLogger(logger_name).handlers if getattr(h, _OWNED_ATTR, False)]


def setup_logging(config=None, *, console: bool = False) -> None:
    """Configure the cmdwire logger tree and structlog.

    Args:
        config: Optional Config. Supplies the level, per-subsystem
            levels and log file settings. Without one, records only
            propagate (no files) at INFO, and structlog loggers are not
            cached so a later call with a Config takes effect.
        console: Attach a stderr handler to the ``cmdwire`` logger and
            stop propagation to the root logger. For hosts that do not
            configure logging themselves.
    """
    level = _level(config.logging_level if config is not None else None, logging.INFO)
    subsystem_levels = (config.logging_subsystem_levels or {}) if config is not None else {}

    pkg_logger = logging.getLogger(LOGGER_PREFIX)
    _detach_owned(pkg_logger)
    pkg_logger.setLevel(level)
    pkg_logger.propagate = not console
    if console:
        pkg_logger.addHandler(_own(logging.StreamHandler(sys.stderr), level))

    log_dir: Optional[Path] = None
    if config is not None:
        try:
            config.log_dir.mkdir(parents=True, exist_ok=True)
            log_dir = config.log_dir
        except OSError as exc:
            pkg_logger.warning("cannot create log directory %s: %s", config.log_dir, exc)

    def rotating(filename: str, file_level: int) -> logging.Handler:
        return _own(
            logging.handlers.RotatingFileHandler(
                log_dir / filename,
                maxBytes=config.logging_max_file_size_mb * 1024 * 1024,
                backupCount=config.logging_backup_count,
                encoding="utf-8",
            ),
            file_level,
        )

    if log_dir is not None:
        pkg_logger.addHandler(rotating(f"{LOGGER_PREFIX}.log", level))

    for subsystem in SUBSYSTEMS:
        sub_logger = logging.getLogger(f"{LOGGER_PREFIX}.{subsystem}")
        _detach_owned(sub_logger)
        sub_level = _level(subsystem_levels.get(subsystem), level)
        sub_logger.setLevel(sub_level)
        if log_dir is not None:
            sub_logger.addHandler(rotating(f"{subsystem}.log", sub_level))

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            sanitize_secrets,
            structlog.dev.ConsoleRenderer(colors=False),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=config is not None,
    )

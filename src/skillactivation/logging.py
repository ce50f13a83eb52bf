"""Logger setup for skillactivation.

Everything logs under the ``skillactivation`` logger. Two extra levels sit
between the standard ones: VERBOSE (15) for per-request detail and TRACE (5)
for per-skill scoring. Output goes to the file named in ``logging.file`` (or
``$SA_LOG``); without one, records reach stderr only when it is a terminal,
so a host tool reading our stdout/stderr is never flooded.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from skillactivation.config.schema import LoggingConfig

TRACE = 5
VERBOSE = 15

logging.addLevelName(TRACE, "TRACE")
logging.addLevelName(VERBOSE, "VERBOSE")

logger = logging.getLogger("skillactivation")

LOG_ENV_VAR = "SA_LOG"
_FORMAT = "%(asctime)s %(levelname)s: %(message)s"
_DATEFMT = "%H:%M:%S"

# Indexed by the numeric ``verbose`` setting; anything above the end is TRACE
_VERBOSITY = (logging.ERROR, logging.WARNING, logging.INFO, VERBOSE, TRACE)

_NAMED_LEVELS = {
    "trace": TRACE,
    "debug": logging.DEBUG,
    "verbose": VERBOSE,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "critical": logging.CRITICAL,
}

_configured = False


class _LowerLevelFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        record.levelname = record.levelname.lower()
        return super().format(record)


def resolve_level(config: LoggingConfig | None) -> int:
    """Effective level for a logging config.

    A numeric ``verbose`` (0 = errors only .. 4 = trace) beats a named
    ``level``. Unknown names mean INFO; no config at all means WARNING.
    """
    if config is None:
        return logging.WARNING
    if config.verbose is not None:
        index = max(0, config.verbose)
        return _VERBOSITY[index] if index < len(_VERBOSITY) else TRACE
    if config.level:
        return _NAMED_LEVELS.get(config.level.strip().lower(), logging.INFO)
    return logging.WARNING


def _stderr_handler() -> logging.Handler:
    return logging.StreamHandler(sys.stderr)


def _build_handlers(log_path: str | None) -> list[logging.Handler]:
    if not log_path:
        return [_stderr_handler()] if sys.stderr.isatty() else []
    path = os.path.expanduser(log_path)
    try:
        return [logging.FileHandler(path, mode="a", encoding="utf-8")]
    except OSError as e:
        sys.stderr.write(f"[skillactivation] cannot open log file {path}: {e}\n")
        return [_stderr_handler()]


def setup_logging(config: LoggingConfig | None = None) -> None:
    """Attach handlers to the package logger. Only the first call has any effect.

    Args:
        config: Level, verbosity and log file settings; ``$SA_LOG`` names the
            file when the config does not.
    """
    global _configured
    if _configured:
        return
    _configured = True

    level = resolve_level(config)
    logger.setLevel(level)
    log_path = config.file if config is not None and config.file else None
    formatter = _LowerLevelFormatter(_FORMAT, datefmt=_DATEFMT)
    for handler in _build_handlers(log_path or os.environ.get(LOG_ENV_VAR)):
        handler.setLevel(level)
        handler.setFormatter(formatter)
        logger.addHandler(handler)


def get_logger(name: str | None = None) -> logging.Logger:
    """The package logger, or its child ``skillactivation.<name>``."""
    return logger.getChild(name) if name else logger

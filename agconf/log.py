"""Logging for agconf, structlog on top of standard logging.

The CLI prints its report to stdout through rich. Log events go to stderr
and stay at WARNING unless ``--verbose`` is given, so ``agconf check --quiet``
remains silent in CI.
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog

# GitPython logs every git subprocess it spawns.
_NOISY_LOGGERS = ("git",)


def configure_logging(
    verbose: bool = False,
    *,
    json_logs: bool = False,
    use_colors: bool | None = None,
) -> None:
    """Configure structlog and standard logging for one CLI run.

    Args:
        verbose: Log at DEBUG instead of WARNING
        json_logs: One JSON object per event, for log collectors
        use_colors: Colored console output (auto-detected if None)
    """
    level = logging.DEBUG if verbose else logging.WARNING

    logging.basicConfig(
        level=level,
        handlers=[logging.StreamHandler(sys.stderr)],
        force=True,
        format="%(message)s",
    )
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.INFO if verbose else logging.WARNING)

    processors: list[Any] = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.format_exc_info,
    ]

    if json_logs:
        processors.append(structlog.processors.JSONRenderer())
    else:
        if use_colors is None:
            use_colors = sys.stderr.isatty()
        processors.append(structlog.dev.ConsoleRenderer(colors=use_colors))

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)

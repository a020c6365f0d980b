from __future__ import annotations

import logging
import sys
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from pathlib import Path

_LOGGING_CONFIGURED = False


def setup_logging(filename: str | Path | None = None) -> structlog.BoundLogger:
    """Set up structured logging for the dir2llm package.

    Diagnostics never go to stdout, which may carry the exported document.

    Args:
        filename: Optional path to a log file. If None, logs are written to stderr.

    Returns:
        A structlog logger instance configured for the dir2llm package.
    """
    global _LOGGING_CONFIGURED  # noqa: PLW0603
    if filename:
        root = logging.getLogger()
        for handler in list(root.handlers):
            root.removeHandler(handler)
        root.addHandler(logging.FileHandler(str(filename), encoding="utf-8"))
    if not _LOGGING_CONFIGURED:
        if not filename:
            logging.basicConfig(
                level=logging.INFO,
                handlers=[logging.StreamHandler(sys.stderr)],
                format="%(message)s",
            )
        else:
            logging.getLogger().setLevel(logging.INFO)
        structlog.configure(
            processors=[
                structlog.processors.TimeStamper(fmt="iso"),
                structlog.processors.add_log_level,
                structlog.processors.StackInfoRenderer(),
                structlog.processors.format_exc_info,
                structlog.processors.JSONRenderer(),
            ],
            wrapper_class=structlog.make_filtering_bound_logger(logging.INFO),
            context_class=dict,
            logger_factory=structlog.stdlib.LoggerFactory(),
            cache_logger_on_first_use=True,
        )
        _LOGGING_CONFIGURED = True

    return structlog.get_logger("dir2llm")


logger = setup_logging()

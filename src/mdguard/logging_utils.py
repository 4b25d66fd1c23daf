#  Copyright (c) 2025 Tom Villani, Ph.D.
"""Centralized logging setup for mdguard entry points.

Library modules only create loggers; handlers are installed here by the CLI
(or by an embedding application that wants the same format). Security
rejections are logged with a ``[SECURITY]`` prefix and can be routed to a
separate audit file.
"""

from __future__ import annotations

import logging
import sys
from typing import Optional

SECURITY_PREFIX = "[SECURITY]"


class SecurityEventFilter(logging.Filter):
    """Pass only records whose message starts with the security prefix."""

    def filter(self, record: logging.LogRecord) -> bool:
        """Return True for security events."""
        return record.getMessage().startswith(SECURITY_PREFIX)


def configure_logging(
    log_level: int | str,
    log_file: Optional[str] = None,
    trace_mode: bool = False,
    security_log_file: Optional[str] = None,
) -> logging.Logger:
    """Configure root logging handlers for the CLI.

    Parameters
    ----------
    log_level : int | str
        Numeric logging level or string name (e.g., "INFO").
    log_file : str, optional
        Path to a log file receiving the same output as the console.
    trace_mode : bool, default False
        When true, emit timestamps and logger names for debugging traces.
    security_log_file : str, optional
        Path to an audit file receiving only ``[SECURITY]`` events, at
        WARNING and above regardless of ``log_level``.

    Returns
    -------
    logging.Logger
        The configured root logger instance.

    """
    resolved_level = log_level if isinstance(log_level, int) else getattr(logging, str(log_level).upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()

    format_str = "[%(asctime)s] [%(levelname)s] [%(name)s] %(message)s" if trace_mode else "%(levelname)s: %(message)s"
    date_format = "%Y-%m-%d %H:%M:%S" if trace_mode else None
    formatter = logging.Formatter(format_str, datefmt=date_format)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(resolved_level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    handler_levels = [resolved_level]

    if log_file:
        try:
            file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
            file_handler.setLevel(resolved_level)
            file_handler.setFormatter(formatter)
            root_logger.addHandler(file_handler)
        except OSError as exc:
            root_logger.warning("Could not create log file %s: %s", log_file, exc)

    if security_log_file:
        try:
            audit_handler = logging.FileHandler(security_log_file, mode="a", encoding="utf-8")
            audit_handler.setLevel(logging.WARNING)
            audit_handler.addFilter(SecurityEventFilter())
            audit_handler.setFormatter(logging.Formatter("[%(asctime)s] [%(name)s] %(message)s"))
            root_logger.addHandler(audit_handler)
            handler_levels.append(logging.WARNING)
        except OSError as exc:
            root_logger.warning("Could not create security log file %s: %s", security_log_file, exc)

    # The root level is the lowest any handler needs
    root_logger.setLevel(min(handler_levels))

    return root_logger


__all__ = ["SECURITY_PREFIX", "SecurityEventFilter", "configure_logging"]

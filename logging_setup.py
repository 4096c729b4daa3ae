#!/usr/bin/env python3
"""
logging_setup.py
================
Configures the root logger with a console handler and a rotating file
handler (:data:`config.LOG_FILE`, 1 MB, 2 backups).

Call :func:`setup_logging` once at startup, before the server begins
accepting connections.
"""

import logging
from logging.handlers import RotatingFileHandler
from typing import Optional, Union

import config


def setup_logging(
    level: Union[int, str] = logging.INFO,
    log_file: Optional[str] = None,
) -> None:
    """Apply a unified log format to both console and file output.

    Parameters
    ----------
    level : int or str
        Minimum severity level (e.g. ``logging.DEBUG`` or ``"INFO"``).
    log_file : str or None
        Rotating log file path; defaults to :data:`config.LOG_FILE`.
        Pass an empty string to log to the console only.
    """
    root = logging.getLogger()
    root.setLevel(level)

    fmt = logging.Formatter(
        "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
    )

    ch = logging.StreamHandler()
    ch.setFormatter(fmt)

    root.handlers.clear()
    root.addHandler(ch)

    path = config.LOG_FILE if log_file is None else log_file
    if path:
        fh = RotatingFileHandler(path, maxBytes=1_000_000, backupCount=2)
        fh.setFormatter(fmt)
        root.addHandler(fh)

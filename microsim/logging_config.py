"""Shared logging configuration for microsim programs.

Call ``configure_logging()`` once at any entry point to ensure logs are emitted.
The engine itself never configures logging on import.
The function is idempotent: if the root logger already has handlers, it does nothing.
"""

import logging
import os
from typing import Optional, Union


def configure_logging(level: Union[int, str] = logging.INFO,
                      log_file: Optional[str] = "logs/microsim.log") -> None:
    """Configure root logger with console + optional file handler.

    Only configures if the root logger has no handlers (idempotent).
    Pass ``log_file=None`` to log to the console only.
    """
    root = logging.getLogger()
    if root.handlers:
        return

    if isinstance(level, str):
        level = logging.getLevelName(level.upper())

    fmt = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    formatter = logging.Formatter(fmt)

    # Console handler
    console = logging.StreamHandler()
    console.setFormatter(formatter)
    root.addHandler(console)

    # File handler (optional, only if the directory exists or can be created)
    if log_file:
        try:
            os.makedirs(os.path.dirname(log_file) or ".", exist_ok=True)
            fh = logging.FileHandler(log_file, mode="a")
            fh.setFormatter(formatter)
            root.addHandler(fh)
        except OSError:
            pass

    root.setLevel(level)

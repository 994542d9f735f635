"""Logging configuration utilities."""

import logging
import sys


def setup_logging(
    level: int | str = logging.INFO,
    log_file: str | None = None,
    format_string: str | None = None,
) -> None:
    """
    Set up logging configuration.

    Args:
        level: Logging level, as a number or a name such as ``"DEBUG"``
        log_file: Optional log file path
        format_string: Optional custom format string
    """
    if format_string is None:
        format_string = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    if isinstance(level, str):
        name = level.upper()
        level = logging.getLevelName(name)
        if not isinstance(level, int):
            raise ValueError(f"Unknown logging level: {name}")

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file is not None:
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=level,
        format=format_string,
        handlers=handlers,
        force=True,  # Override existing configuration
    )

    logger = logging.getLogger(__name__)
    logger.debug(f"Logging configured (file: {log_file or 'none'})")


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance.

    Args:
        name: Logger name

    Returns:
        Logger instance
    """
    return logging.getLogger(name)

"""Logging setup for apiconsole.

Every module logs through get_logger(__name__) under the "apiconsole"
namespace. Nothing is configured at import: the CLI calls configure_logging
once per invocation, and library users either do the same or attach their
own handlers to the "apiconsole" logger.
"""

import logging
from pathlib import Path
from typing import Optional

ROOT_LOGGER = "apiconsole"

DEFAULT_LEVEL = logging.WARNING

CONSOLE_FORMAT = "%(levelname)s %(name)s: %(message)s"
FILE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _console_handler(level: int) -> logging.Handler:
    # StreamHandler() writes to stderr; stdout is reserved for command output
    handler = logging.StreamHandler()
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(CONSOLE_FORMAT))
    return handler


def _file_handler(log_file: Path, level: int) -> logging.Handler:
    log_file.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(log_file, encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt=DATE_FORMAT))
    return handler


def configure_logging(
    level: int = DEFAULT_LEVEL,
    log_file: Optional[Path] = None,
    console: bool = True,
) -> logging.Logger:
    """(Re)configure the apiconsole logger.

    Calling it again replaces the previous handlers.

    Args:
        level: Logging level for the package
        log_file: Also write full timestamped records to this file
        console: Write records to stderr

    Returns:
        The package root logger

    Example:
        configure_logging(level=logging.DEBUG, log_file=Path(".apiconsole/apiconsole.log"))
    """
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(level)

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    if console:
        logger.addHandler(_console_handler(level))
    if log_file is not None:
        logger.addHandler(_file_handler(log_file, level))

    logger.propagate = False
    return logger


def get_logger(name: str) -> logging.Logger:
    """Logger for a module, always nested under the apiconsole namespace.

    Example:
        logger = get_logger(__name__)
        logger.warning("Unresolved schema reference: %s", ref)
    """
    if name != ROOT_LOGGER and not name.startswith(f"{ROOT_LOGGER}."):
        name = f"{ROOT_LOGGER}.{name}"
    return logging.getLogger(name)

"""
opsdesk logging utilities

Standard logging configuration for the API server and the stores.
"""

import logging
from typing import Optional, Union

# Default logging format
DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(
    level: Union[int, str] = logging.INFO,
    format: str = DEFAULT_FORMAT,
    file_path: Optional[str] = None
) -> None:
    """
    Configure root logging for the application.

    Args:
        level: Log level, as a number or a name such as "DEBUG"
        format: Log format string
        file_path: Optional file path for file logging
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    formatter = logging.Formatter(format)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if file_path:
        file_handler = logging.FileHandler(file_path)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

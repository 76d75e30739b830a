"""Logging utilities for the autobump tool.

All loggers hang off the ``autobump`` logger, which owns two handlers: a
rich console handler on stderr (INFO) and a debug log file under
``~/.autobump/logs``. Both mask credentials embedded in URLs, since CI
pushes go through token-authenticated remotes.
"""

import logging
import re
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

ROOT_LOGGER = "autobump"
LOG_DIR = Path(".autobump") / "logs"
LOG_FILE = "autobump.log"

_URL_CREDENTIALS = re.compile(r"(https?://)[^/@\s]+@")


def mask_credentials(text: str) -> str:
    """Hide user:token pairs embedded in URLs."""
    return _URL_CREDENTIALS.sub(r"\1***@", text)


class CredentialFilter(logging.Filter):
    """Rewrites records so no handler ever sees a token."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        masked = mask_credentials(message)
        if masked != message:
            record.msg = masked
            record.args = None
        return True


def _install_handlers(root: logging.Logger) -> None:
    credential_filter = CredentialFilter()

    console_handler = RichHandler(
        console=Console(stderr=True),
        show_time=False,
        show_path=False,
        rich_tracebacks=True,
    )
    console_handler.setLevel(logging.INFO)
    console_handler.addFilter(credential_filter)
    root.addHandler(console_handler)

    # CI runners may not have a writable home
    log_dir = Path.home() / LOG_DIR
    try:
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_dir / LOG_FILE)
    except OSError:
        return

    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(
        logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    )
    file_handler.addFilter(credential_filter)
    root.addHandler(file_handler)


class BumpLogger:
    """Named logger whose records reach the shared autobump handlers."""

    def __init__(self, name: str = ROOT_LOGGER, level: str = "INFO"):
        """Initialize logger.

        Args:
            name: Logger name, normally a module's ``__name__``
            level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        """
        root = logging.getLogger(ROOT_LOGGER)
        if not root.handlers:
            _install_handlers(root)

        self.logger = logging.getLogger(name)
        self.logger.setLevel(getattr(logging, level.upper()))

    def debug(self, message: str, **kwargs) -> None:
        self.logger.debug(message, **kwargs)

    def info(self, message: str, **kwargs) -> None:
        self.logger.info(message, **kwargs)

    def warning(self, message: str, **kwargs) -> None:
        self.logger.warning(message, **kwargs)

    def error(self, message: str, **kwargs) -> None:
        self.logger.error(message, **kwargs)

    def exception(self, message: str, **kwargs) -> None:
        """Log an error with the active traceback."""
        self.logger.exception(message, **kwargs)


def get_logger(name: Optional[str] = None, level: str = "INFO") -> BumpLogger:
    """Get a logger for a module.

    Args:
        name: Logger name (defaults to 'autobump')
        level: Log level

    Returns:
        Logger instance
    """
    return BumpLogger(name or ROOT_LOGGER, level)


def enable_verbose_logging() -> None:
    """Switch every autobump logger and the console handler to DEBUG."""
    root = logging.getLogger(ROOT_LOGGER)
    root.setLevel(logging.DEBUG)

    for name, child in logging.Logger.manager.loggerDict.items():
        if isinstance(child, logging.Logger) and name.startswith(ROOT_LOGGER):
            child.setLevel(logging.DEBUG)

    for handler in root.handlers:
        handler.setLevel(logging.DEBUG)

    root.debug("Verbose logging enabled")

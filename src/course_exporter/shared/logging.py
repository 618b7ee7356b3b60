"""
Logging Module - Rich console logging for the exporter.
=======================================================

Logs go to stderr through a Rich handler (or a plain stream handler), so
command output on stdout stays clean. A log file can be added from
settings.
"""

import logging
import sys
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

DEFAULT_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"

# Libraries that log every HTTP round trip at INFO/DEBUG
NOISY_LOGGERS = ("urllib3", "requests", "asyncio", "charset_normalizer")

_configured = False
_installed_handlers: list[logging.Handler] = []
_stderr_console = Console(stderr=True)


def _build_console_handler(use_rich: bool, log_format: str) -> logging.Handler:
    if use_rich:
        handler: logging.Handler = RichHandler(
            console=_stderr_console,
            show_path=False,
            rich_tracebacks=True,
            markup=False,
        )
        handler.setFormatter(logging.Formatter("%(message)s"))
    else:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(log_format))
    return handler


def setup_logging(
    level: str = "INFO",
    use_rich: bool = True,
    log_file: Optional[str] = None,
    log_format: Optional[str] = None,
    force: bool = False,
) -> None:
    """
    Configure the root logger.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        use_rich: Use the Rich handler instead of a plain stream handler
        log_file: Optional file that receives the same records
        log_format: Format for plain and file output
        force: Replace an earlier configuration (the CLI does this once
            settings are loaded)
    """
    global _configured

    if _configured and not force:
        return

    numeric_level = getattr(logging, level.upper(), logging.INFO)
    log_format = log_format or DEFAULT_FORMAT

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    # only drop handlers installed here; others belong to the host process
    while _installed_handlers:
        handler = _installed_handlers.pop()
        root_logger.removeHandler(handler)
        handler.close()

    _installed_handlers.append(_build_console_handler(use_rich, log_format))

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(log_format))
        _installed_handlers.append(file_handler)

    for handler in _installed_handlers:
        root_logger.addHandler(handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    _configured = True
    logging.getLogger(__name__).debug(
        f"Logging configured: level={level}, rich={use_rich}, file={log_file or '-'}"
    )


def get_logger(name: str) -> logging.Logger:
    """
    Get a named logger, configuring defaults on first use.

    Example:
        >>> logger = get_logger(__name__)
        >>> logger.info("Export started")
    """
    if not _configured:
        setup_logging()

    return logging.getLogger(name)


def get_console() -> Console:
    """The stderr console logs are written to; the CLI prints progress here."""
    return _stderr_console

# reviewsync Logging Setup
# Routes library loggers through a Rich handler and an optional log file

import logging
from pathlib import Path
from typing import Optional

from rich.console import Console as RichConsole
from rich.logging import RichHandler

FILE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(
    *,
    verbose: bool = False,
    log_file: Optional[str] = None,
    console: Optional[RichConsole] = None,
) -> logging.Logger:
    """
    Configure the reviewsync logger hierarchy.

    Call once at CLI startup. Library modules only ever call
    logging.getLogger(__name__).

    Args:
        verbose: Log DEBUG and above instead of WARNING and above.
        log_file: Optional file receiving INFO and above in plain text.
        console: Rich console used by the terminal handler (stderr by default).

    Returns:
        The configured package logger.
    """
    logger = logging.getLogger("reviewsync")
    logger.setLevel(logging.DEBUG)
    logger.propagate = False

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    rich_handler = RichHandler(
        console=console or RichConsole(stderr=True),
        show_path=verbose,
        rich_tracebacks=True,
        markup=False,
    )
    rich_handler.setLevel(logging.DEBUG if verbose else logging.WARNING)
    logger.addHandler(rich_handler)

    if log_file:
        path = Path(log_file).expanduser()
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(path, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT, DATE_FORMAT))
        logger.addHandler(file_handler)

    return logger

# reviewsync Output Module
# Rich console output and logging setup

from reviewsync.output.console import Console, create_console
from reviewsync.output.logging import setup_logging

__all__ = [
    "Console",
    "create_console",
    "setup_logging",
]

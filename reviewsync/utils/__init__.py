# reviewsync Utilities Module
# Time source and timestamp helpers

from reviewsync.utils.clock import Clock, SystemClock, format_timestamp, parse_timestamp

__all__ = [
    "Clock",
    "SystemClock",
    "format_timestamp",
    "parse_timestamp",
]

from .json import json_dumps, json_dumps_bytes
from .logging import get_logger
from .timestamps import Clock, to_rfc3339, utc_now

__all__ = [
    "json_dumps",
    "json_dumps_bytes",
    "get_logger",
    "Clock",
    "to_rfc3339",
    "utc_now",
]

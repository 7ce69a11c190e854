"""feedsync - Nexa 订阅阅读器的客户端数据同步层."""

from feedsync.config import Settings, get_settings
from feedsync.core import ReaderEngine, View

__all__ = [
    "ReaderEngine",
    "Settings",
    "View",
    "get_settings",
]

__version__ = "0.1.0"

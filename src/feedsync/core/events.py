"""事件通道：订阅、取消订阅与广播."""

import logging
from collections.abc import Callable
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

Listener = Callable[[T], None]


class EventChannel(Generic[T]):
    """显式持有的事件主题.

    同一监听器重复订阅只登记一次，广播按订阅顺序同步调用各监听器。
    某个监听器抛出异常时记录日志，其余监听器照常执行。
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self._listeners: dict[Listener[T], None] = {}

    def __len__(self) -> int:
        return len(self._listeners)

    def subscribe(self, listener: Listener[T]) -> Callable[[], None]:
        """添加监听器，返回取消订阅函数."""
        self._listeners[listener] = None

        def unsubscribe() -> None:
            self.unsubscribe(listener)

        return unsubscribe

    def unsubscribe(self, listener: Listener[T]) -> None:
        """移除监听器."""
        self._listeners.pop(listener, None)

    def emit(self, event: T) -> None:
        """广播事件到所有监听器."""
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception(f"事件监听器执行失败: channel={self.name}")

"""乐观状态修改：先本地生效，再提交服务端，失败时整体重新同步."""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any

from feedsync.core.api import NexaApi
from feedsync.core.coordinator import QueryCoordinator
from feedsync.core.directory import FeedDirectoryCache
from feedsync.core.errors import AuthError, FeedSyncError, ValidationError
from feedsync.core.events import EventChannel
from feedsync.models.item import STATUS_FIELDS, Item

logger = logging.getLogger(__name__)


@dataclass
class MutationFailure:
    """一次未被服务端确认的状态修改."""

    item_id: str
    field: str
    value: bool
    error: FeedSyncError | None = None


class OptimisticMutationApplier:
    """文章状态修改的两阶段协议.

    第一阶段同步修改窗口中的文章（read 还会调整未读数）；第二阶段提交
    服务端。确认成功不做任何事；失败时不回滚到假定的旧值，而是重新拉取
    当前视图和订阅目录，因为期间其他操作可能已经改变了真实状态。
    """

    def __init__(
        self,
        api: NexaApi,
        coordinator: QueryCoordinator,
        directory: FeedDirectoryCache,
    ) -> None:
        self.api = api
        self.coordinator = coordinator
        self.directory = directory
        self.failures: EventChannel[MutationFailure] = EventChannel("mutations.failures")
        self._tasks: set[asyncio.Task[Any]] = set()

    def update_status(self, item: Item, field: str, value: bool) -> asyncio.Task[bool]:
        """修改文章状态，返回提交任务（结果为服务端是否确认）."""
        if field not in STATUS_FIELDS:
            msg = f"不支持的状态字段: {field}"
            raise ValidationError(msg)

        previous = self.coordinator.patch_item(item.id, field, value)
        current = getattr(previous if previous is not None else item, field)

        # 只有值确实改变时才调整未读数，重复标记不会重复扣减
        if field == "read" and current != value:
            self.directory.adjust_unread(item.feed_id, -1 if value else 1)

        task = asyncio.create_task(self._commit(item, field, value))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _commit(self, item: Item, field: str, value: bool) -> bool:
        error: FeedSyncError | None = None
        try:
            if await self.api.update_item_status(item.id, field, value):
                return True
        except AuthError:
            # 会话拆除会清空全部缓存，这里无需再同步
            logger.info(f"提交状态修改时会话已失效: {item.id}")
            return False
        except FeedSyncError as e:
            error = e

        logger.warning(f"更新 {field} 状态失败: item={item.id}, error={error}")
        self.failures.emit(MutationFailure(item.id, field, value, error))
        self._reconcile()
        return False

    def _reconcile(self) -> None:
        self.coordinator.resync()
        self.directory.schedule_refresh()

    async def wait_idle(self) -> None:
        """等待所有在途提交完成."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

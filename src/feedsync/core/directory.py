"""订阅目录缓存."""

import asyncio
import logging
from typing import Any

from feedsync.core.api import NexaApi
from feedsync.core.coordinator import QueryCoordinator
from feedsync.core.errors import AuthError, FeedSyncError
from feedsync.core.events import EventChannel
from feedsync.core.views import View
from feedsync.models.feed import Feed, FeedDirectory

logger = logging.getLogger(__name__)


class FeedDirectoryCache:
    """服务端订阅目录的本地镜像.

    未读数由服务端聚合，且后台抓取随时会改变它，所以每次增删改之后都
    重新拉取整个目录，而不是在本地打补丁。只有标记已读产生的乐观调整
    会直接修改本地未读数，并在下一次重新拉取时被覆盖。
    """

    def __init__(self, api: NexaApi, coordinator: QueryCoordinator | None = None) -> None:
        self.api = api
        self.coordinator = coordinator
        self.feeds: list[Feed] = []
        self.tags: list[str] = []
        self.unread_total = 0
        self.loaded = False
        self.changes: EventChannel[str] = EventChannel("directory.changes")
        self._sequence = 0
        self._suspended = False
        self._tasks: set[asyncio.Task[Any]] = set()

    def get(self, feed_id: str) -> Feed | None:
        """按 ID 查找 feed."""
        for feed in self.feeds:
            if feed.id == feed_id:
                return feed
        return None

    def feeds_with_tag(self, tag: str) -> list[Feed]:
        return [feed for feed in self.feeds if tag in feed.tags]

    async def list_feeds(self) -> list[Feed]:
        """重新拉取整个目录."""
        if self._suspended:
            return self.feeds

        self._sequence += 1
        sequence = self._sequence
        directory = await self.api.list_feeds()
        if directory.feeds and not directory.tags:
            # 目录响应未带标签时，单独拉取标签列表
            directory = directory.model_copy(update={"tags": await self.api.list_tags()})

        # 并发拉取时，只应用最后发出的那一次
        if sequence != self._sequence:
            logger.debug(f"丢弃过期的目录响应: sequence={sequence}")
            return self.feeds

        self._apply(directory)
        return self.feeds

    def _apply(self, directory: FeedDirectory) -> None:
        self.feeds = list(directory.feeds)
        self.tags = list(directory.tags) or sorted({tag for feed in self.feeds for tag in feed.tags})
        self.unread_total = sum(feed.unread_count for feed in self.feeds)
        self.loaded = True
        logger.info(f"订阅目录已更新: {len(self.feeds)} 个 feed, {self.unread_total} 篇未读")
        self.changes.emit("listed")

    def _ensure_active(self) -> None:
        if self._suspended:
            msg = "需要登录"
            raise AuthError(msg)

    async def add(
        self,
        url: str,
        schedule: str,
        desc: str | None = None,
        tags: list[str] | None = None,
        select: bool = False,
    ) -> Feed:
        """添加订阅源，重新拉取目录后返回新 feed."""
        self._ensure_active()
        feed = await self.api.add_feed(url, schedule, desc, tags)
        logger.info(f"已添加 feed: {feed.id}")
        await self.list_feeds()

        if select and self.coordinator is not None:
            self.coordinator.select_view(View.feed(feed.id))
        return self.get(feed.id) or feed

    async def update(
        self,
        feed_id: str,
        url: str,
        schedule: str,
        desc: str | None = None,
        tags: list[str] | None = None,
        suspended: bool = False,
    ) -> Feed:
        """更新订阅源，重新拉取目录后返回更新后的 feed."""
        self._ensure_active()
        feed = await self.api.update_feed(feed_id, url, schedule, desc, tags, suspended)
        logger.info(f"已更新 feed: {feed_id}")
        await self.list_feeds()
        return self.get(feed.id) or feed

    async def remove(self, feed_id: str) -> bool:
        """删除订阅源.

        删除成功后、重新拉取之前，同步地把协调器从该 feed 切走并从本地
        目录中去掉它，保证任何时刻都不会渲染已删除的 feed。
        """
        self._ensure_active()
        if not await self.api.delete_feed(feed_id):
            logger.warning(f"服务端拒绝删除 feed: {feed_id}")
            return False

        # 先静默移除本地条目，再切换视图，最后统一通知
        removed = self.get(feed_id)
        if removed is not None:
            self.feeds = [feed for feed in self.feeds if feed.id != feed_id]
            self.unread_total = max(0, self.unread_total - removed.unread_count)
        if self.coordinator is not None:
            self.coordinator.drop_feed(feed_id)
        self.changes.emit("removed")

        logger.info(f"已删除 feed: {feed_id}")
        await self.list_feeds()
        return True

    def adjust_unread(self, feed_id: str, delta: int) -> None:
        """乐观调整未读数（feed 本身和未读聚合），结果不小于 0.

        未读聚合始终等于各 feed 未读数之和；目录中没有的 feed 不做调整。
        """
        for index, feed in enumerate(self.feeds):
            if feed.id == feed_id:
                self.feeds[index] = feed.model_copy(
                    update={"unread_count": max(0, feed.unread_count + delta)}
                )
                break
        else:
            logger.debug(f"目录中没有该 feed，跳过未读数调整: {feed_id}")
            return

        self.unread_total = sum(feed.unread_count for feed in self.feeds)
        self.changes.emit("unread")

    def schedule_refresh(self) -> asyncio.Task[None]:
        """在后台重新拉取目录，失败只记录日志."""
        task = asyncio.create_task(self._refresh_quietly())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _refresh_quietly(self) -> None:
        try:
            await self.list_feeds()
        except FeedSyncError as e:
            logger.warning(f"后台刷新订阅目录失败: {e}")

    async def wait_idle(self) -> None:
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def suspend(self) -> None:
        self._suspended = True

    def resume(self) -> None:
        self._suspended = False

    def clear(self) -> None:
        """会话失效时清空目录并暂停."""
        self._sequence += 1
        self.feeds = []
        self.tags = []
        self.unread_total = 0
        self.loaded = False
        self._suspended = True
        self.changes.emit("cleared")

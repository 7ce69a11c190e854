"""同步引擎 - 组装各组件，供展示层调用."""

import asyncio
import logging
from types import TracebackType
from typing import TYPE_CHECKING

import httpx

from feedsync.config import Settings
from feedsync.core.api import NexaApi
from feedsync.core.coordinator import QueryCoordinator
from feedsync.core.directory import FeedDirectoryCache
from feedsync.core.errors import FeedSyncError
from feedsync.core.mutations import OptimisticMutationApplier
from feedsync.core.session import SessionManager
from feedsync.core.storage import CredentialStore, SqlCredentialStore
from feedsync.core.transport import TransportClient
from feedsync.core.views import View
from feedsync.models.auth import LoginResponse
from feedsync.models.feed import Feed
from feedsync.models.item import Item

if TYPE_CHECKING:
    from apscheduler.schedulers.asyncio import AsyncIOScheduler

logger = logging.getLogger(__name__)


class ReaderEngine:
    """客户端数据同步引擎."""

    def __init__(
        self,
        settings: Settings,
        store: CredentialStore | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.settings = settings
        self.store = store or SqlCredentialStore(settings.credential_db_url)
        self.session = SessionManager(
            self.store,
            token_key=settings.token_key,
            invalidation_window=settings.invalidation_window_seconds,
        )
        self.transport = TransportClient(
            settings.server_url,
            self.session,
            timeout=settings.request_timeout_seconds,
            transport=transport,
        )
        self.api = NexaApi(self.transport)
        self.coordinator = QueryCoordinator(self.api, page_size=settings.page_size)
        self.directory = FeedDirectoryCache(self.api, self.coordinator)
        self.mutations = OptimisticMutationApplier(self.api, self.coordinator, self.directory)
        self.scheduler: "AsyncIOScheduler | None" = None

        # 启动探测完成前不发起任何数据请求
        self.coordinator.suspend()
        self.directory.suspend()
        self.session.invalidated.subscribe(self._on_invalidated)

    async def __aenter__(self) -> "ReaderEngine":
        await self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()

    async def start(self, background_refresh: bool = False) -> str:
        """探测认证需求，可以拉取数据时执行冷启动."""
        state = await self.session.start(self.api)
        if self.session.can_fetch:
            await self.cold_start()
        if background_refresh and self.scheduler is None:
            from feedsync.scheduler import create_scheduler

            self.scheduler = create_scheduler(self, self.settings)
        return state

    async def login(self, password: str) -> LoginResponse:
        """登录成功后丢弃旧缓存，重新拉取目录和当前视图."""
        response = await self.session.login(self.api, password)
        if self.session.can_fetch:
            await self.cold_start()
        return response

    async def logout(self) -> None:
        await self.session.logout()

    async def cold_start(self) -> None:
        """清空缓存后完整拉取，不与之前的数据合并."""
        view = self.coordinator.view
        self.directory.clear()
        self.coordinator.reset()
        self.directory.resume()
        self.coordinator.resume()

        logger.info("冷启动：重新拉取订阅目录和当前视图")
        task = self.coordinator.select_view(view)
        try:
            await self.directory.list_feeds()
        except FeedSyncError as e:
            logger.warning(f"冷启动拉取订阅目录失败: {e}")
        if task is not None:
            await task

    def _on_invalidated(self, reason: str) -> None:
        logger.info(f"会话失效（{reason}），清空全部缓存")
        self.coordinator.reset()
        self.directory.clear()

    # 展示层入口

    @property
    def feeds(self) -> list[Feed]:
        return self.directory.feeds

    @property
    def items(self) -> list[Item]:
        return self.coordinator.items

    def select_view(self, view: View) -> asyncio.Task[None] | None:
        return self.coordinator.select_view(view)

    def load_more(self) -> asyncio.Task[None] | None:
        return self.coordinator.load_more()

    def search(self, query: str) -> asyncio.Task[None] | None:
        return self.coordinator.search(query)

    def refresh(self) -> asyncio.Task[None] | None:
        """刷新当前视图，同时在后台重新拉取目录."""
        if self.session.can_fetch:
            self.directory.schedule_refresh()
        return self.coordinator.refresh()

    def update_status(self, item: Item, field: str, value: bool) -> asyncio.Task[bool]:
        return self.mutations.update_status(item, field, value)

    async def add_feed(
        self,
        url: str,
        schedule: str,
        desc: str | None = None,
        tags: list[str] | None = None,
    ) -> Feed:
        """添加订阅源并切换到它."""
        return await self.directory.add(url, schedule, desc, tags, select=True)

    async def update_feed(
        self,
        feed_id: str,
        url: str,
        schedule: str,
        desc: str | None = None,
        tags: list[str] | None = None,
        suspended: bool = False,
    ) -> Feed:
        return await self.directory.update(feed_id, url, schedule, desc, tags, suspended)

    async def remove_feed(self, feed_id: str) -> bool:
        return await self.directory.remove(feed_id)

    async def wait_idle(self) -> None:
        """等待所有后台请求完成."""
        await self.mutations.wait_idle()
        await self.directory.wait_idle()
        await self.coordinator.wait_idle()

    async def close(self) -> None:
        """关闭引擎."""
        from feedsync.scheduler import shutdown_scheduler

        await shutdown_scheduler(self.scheduler)
        self.scheduler = None
        await self.wait_idle()
        await self.transport.close()
        await self.store.close()

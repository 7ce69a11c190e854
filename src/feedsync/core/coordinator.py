"""查询协调器 - 视图切换、分页与过期响应丢弃."""

import asyncio
import logging
from collections.abc import Coroutine
from dataclasses import dataclass
from typing import Any

from feedsync.core.api import NexaApi
from feedsync.core.errors import FeedSyncError
from feedsync.core.events import EventChannel
from feedsync.core.views import View
from feedsync.models.item import Item, ItemsPage, Pagination

logger = logging.getLogger(__name__)


class LoadState:
    """协调器状态枚举."""

    IDLE = "idle"
    LOADING_REPLACE = "loading_replace"
    LOADING_APPEND = "loading_append"
    ERROR = "error"


class FetchMode:
    """请求模式：替换窗口或追加到窗口."""

    REPLACE = "replace"
    APPEND = "append"


@dataclass
class _Snapshot:
    """进入搜索前的窗口快照；items 为 None 表示需要重新拉取."""

    view: View
    items: list[Item] | None = None
    pagination: Pagination | None = None


class QueryCoordinator:
    """把“当前视图”翻译成列表请求的状态机.

    每次切换视图都会递增 generation，请求携带发出时的 generation，
    完成时与当前值比较，不一致的响应直接丢弃。被取代的请求不会被取消，
    只是结果被忽略。
    """

    def __init__(self, api: NexaApi, page_size: int = 10) -> None:
        self.api = api
        self.page_size = page_size
        self.view = View.all()
        self.items: list[Item] = []
        self.pagination = self._empty_pagination()
        self.state = LoadState.IDLE
        self.generation = 0
        self.last_error: FeedSyncError | None = None
        self.errors: EventChannel[FeedSyncError] = EventChannel("coordinator.errors")
        self.changes: EventChannel[str] = EventChannel("coordinator.changes")
        self._suspended = False
        self._pre_search: _Snapshot | None = None
        self._tasks: set[asyncio.Task[Any]] = set()

    def _empty_pagination(self) -> Pagination:
        return Pagination(total=0, page=1, size=self.page_size)

    @property
    def is_loading(self) -> bool:
        """是否有当前代的请求在途."""
        return self.state in (LoadState.LOADING_REPLACE, LoadState.LOADING_APPEND)

    @property
    def suspended(self) -> bool:
        return self._suspended

    @property
    def can_load_more(self) -> bool:
        """是否可以加载下一页."""
        return not self._suspended and not self.is_loading and not self.pagination.exhausted

    def _notify(self, reason: str) -> None:
        self.changes.emit(reason)

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> asyncio.Task[None]:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def wait_idle(self) -> None:
        """等待所有在途请求完成（包括已被取代的请求）."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    # 视图切换

    def select_view(self, view: View, refresh: bool = False) -> asyncio.Task[None] | None:
        """切换数据源：同步清空窗口并重置分页，再发起新请求."""
        if not view.is_search:
            self._pre_search = None
        return self._issue_replace(view, clear=True, refresh=refresh)

    def search(self, query: str) -> asyncio.Task[None] | None:
        """全文搜索；空查询恢复进入搜索前的视图."""
        query = query.strip()
        if not query:
            return self._leave_search()

        if not self.view.is_search:
            if self.state == LoadState.IDLE and not self._suspended:
                self._pre_search = _Snapshot(
                    view=self.view,
                    items=list(self.items),
                    pagination=self.pagination.model_copy(),
                )
            else:
                self._pre_search = _Snapshot(view=self.view)

        return self._issue_replace(View.search(query), clear=True)

    def _leave_search(self) -> asyncio.Task[None] | None:
        if not self.view.is_search:
            return None

        snapshot = self._pre_search or _Snapshot(view=View.all())
        self._pre_search = None

        if snapshot.items is None or snapshot.pagination is None or self._suspended:
            return self.select_view(snapshot.view)

        # 递增 generation 以丢弃仍在途的搜索响应
        self.generation += 1
        self.view = snapshot.view
        self.items = snapshot.items
        self.pagination = snapshot.pagination
        self.state = LoadState.IDLE
        self.last_error = None
        logger.debug(f"退出搜索，恢复视图: {self.view}")
        self._notify("restored")
        return None

    def refresh(self) -> asyncio.Task[None] | None:
        """要求服务端刷新源后重新拉取当前视图."""
        return self._issue_replace(self.view, clear=False, refresh=True)

    def resync(self) -> asyncio.Task[None] | None:
        """以服务端数据整体覆盖当前视图（乐观写入失败后使用）."""
        return self._issue_replace(self.view, clear=False)

    def _issue_replace(self, view: View, clear: bool, refresh: bool = False) -> asyncio.Task[None] | None:
        self.generation += 1
        self.view = view
        self.last_error = None
        if clear:
            self.items = []
            self.pagination = self._empty_pagination()

        if self._suspended:
            self.state = LoadState.IDLE
            self._notify("select")
            return None

        self.state = LoadState.LOADING_REPLACE
        self._notify("select")
        return self._spawn(
            self._fetch(view, 1, self.page_size, FetchMode.REPLACE, self.generation, refresh)
        )

    def load_more(self) -> asyncio.Task[None] | None:
        """加载下一页，已耗尽或正在加载时不发请求."""
        if not self.can_load_more:
            return None

        self.state = LoadState.LOADING_APPEND
        self._notify("loading_more")
        return self._spawn(
            self._fetch(
                self.view,
                self.pagination.next_page(),
                self.pagination.size,
                FetchMode.APPEND,
                self.generation,
            )
        )

    # 请求完成回调

    async def _fetch(
        self,
        view: View,
        page: int,
        size: int,
        mode: str,
        generation: int,
        refresh: bool = False,
    ) -> None:
        try:
            if view.is_search:
                response = await self.api.search_items(view.query, page=page, size=size)
            else:
                response = await self.api.list_items(view, page=page, size=size, refresh=refresh)
        except FeedSyncError as e:
            self.on_fetch_failed(e, mode, generation)
            return
        self.on_fetch_succeeded(response, mode, generation, page=page, size=size)

    def on_fetch_succeeded(
        self,
        response: ItemsPage,
        mode: str,
        generation: int,
        page: int = 1,
        size: int | None = None,
    ) -> bool:
        """应用响应，过期的响应被丢弃，返回是否已应用."""
        if generation != self.generation:
            logger.debug(f"丢弃过期响应: generation={generation}, current={self.generation}")
            return False

        pagination = response.resolved_pagination(page, size or self.page_size)
        if mode == FetchMode.APPEND:
            self.items = [*self.items, *response.items]
        else:
            self.items = list(response.items)
        self.pagination = pagination
        self.state = LoadState.IDLE
        self.last_error = None
        self._notify("loaded")
        return True

    def on_fetch_failed(self, error: FeedSyncError, mode: str, generation: int) -> bool:
        """记录失败并广播错误；替换失败时窗口保持为空，追加失败时保持不变."""
        if generation != self.generation:
            logger.debug(f"丢弃过期错误: generation={generation}, current={self.generation}")
            return False

        logger.warning(f"加载文章失败 ({mode}): {error}")
        if mode == FetchMode.REPLACE:
            # refresh/resync 失败时同样不保留旧窗口
            self.items = []
            self.pagination = self._empty_pagination()
        self.state = LoadState.ERROR
        self.last_error = error
        self._notify("failed")
        self.errors.emit(error)
        return True

    # 本地修改

    def patch_item(self, item_id: str, field: str, value: bool) -> Item | None:
        """在窗口（及搜索前快照）中修改文章状态，返回修改前的文章."""
        previous: Item | None = None
        for index, item in enumerate(self.items):
            if item.id == item_id:
                previous = item
                self.items[index] = item.model_copy(update={field: value})

        snapshot = self._pre_search
        if snapshot is not None and snapshot.items is not None:
            for index, item in enumerate(snapshot.items):
                if item.id == item_id:
                    previous = previous or item
                    snapshot.items[index] = item.model_copy(update={field: value})

        if previous is not None:
            self._notify("patched")
        return previous

    def find_item(self, item_id: str) -> Item | None:
        for item in self.items:
            if item.id == item_id:
                return item
        return None

    def drop_feed(self, feed_id: str) -> asyncio.Task[None] | None:
        """移除对已删除 feed 的一切引用，当前视图指向它时切换到 all."""
        snapshot = self._pre_search
        if snapshot is not None:
            if snapshot.view.references(feed_id):
                self._pre_search = _Snapshot(view=View.all())
            elif snapshot.items is not None:
                snapshot.items = [item for item in snapshot.items if item.feed_id != feed_id]

        if self.view.references(feed_id):
            logger.info(f"当前视图对应的 feed 已删除，切换到 all: {feed_id}")
            return self.select_view(View.all())

        remaining = [item for item in self.items if item.feed_id != feed_id]
        if len(remaining) != len(self.items):
            self.items = remaining
            self._notify("patched")
        return None

    # 会话生命周期

    def suspend(self) -> None:
        """暂停发起请求（未登录）."""
        self._suspended = True

    def resume(self) -> None:
        self._suspended = False

    def reset(self) -> None:
        """会话失效时清空全部状态并暂停."""
        self.generation += 1
        self.view = View.all()
        self.items = []
        self.pagination = self._empty_pagination()
        self.state = LoadState.IDLE
        self.last_error = None
        self._pre_search = None
        self._suspended = True
        self._notify("reset")

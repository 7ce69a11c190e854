"""会话管理 - 认证状态与会话失效广播."""

import logging
import time
from collections.abc import Callable
from typing import TYPE_CHECKING

from feedsync.core.errors import FeedSyncError
from feedsync.core.events import EventChannel
from feedsync.core.storage import CredentialStore
from feedsync.models.auth import LoginResponse

if TYPE_CHECKING:
    from feedsync.core.api import NexaApi

logger = logging.getLogger(__name__)


class SessionState:
    """会话状态枚举."""

    UNKNOWN = "unknown"
    AUTH_NOT_REQUIRED = "auth_not_required"
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATED = "authenticated"


class SessionManager:
    """跟踪认证需求与凭据，并负责会话失效广播.

    `invalidated` 通道在每次失效事件中只广播一次：同一时间窗口内的重复 401
    被合并，针对已被替换的旧凭据的 401 被忽略。`authenticated` 通道在登录
    成功后广播，订阅方据此冷启动重新拉取全部数据。
    """

    def __init__(
        self,
        store: CredentialStore,
        token_key: str = "nexa_token",
        invalidation_window: float = 2.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._store = store
        self._token_key = token_key
        self._window = invalidation_window
        self._clock = clock
        self._token: str | None = None
        self._last_invalidated_at: float | None = None
        self.state = SessionState.UNKNOWN
        self.auth_required = False
        self.invalidated: EventChannel[str] = EventChannel("session.invalidated")
        self.authenticated: EventChannel[str] = EventChannel("session.authenticated")

    @property
    def token(self) -> str | None:
        """当前 bearer 凭据."""
        return self._token

    @property
    def can_fetch(self) -> bool:
        """数据组件是否可以发起请求."""
        return self.state in (SessionState.AUTH_NOT_REQUIRED, SessionState.AUTHENTICATED)

    async def start(self, api: "NexaApi") -> str:
        """读取已保存凭据并探测服务端是否需要认证."""
        self._token = await self._store.load(self._token_key)

        try:
            self.auth_required = await api.auth_status()
        except FeedSyncError as e:
            # 探测失败按不需要认证处理，后续 401 会纠正状态
            logger.warning(f"认证状态探测失败: {e}")
            self.auth_required = False

        if not self.auth_required:
            self.state = SessionState.AUTH_NOT_REQUIRED
        elif self._token:
            # 本地凭据仅作乐观判断，仍以后续请求结果为准
            self.state = SessionState.AUTHENTICATED
        else:
            self.state = SessionState.UNAUTHENTICATED

        logger.info(f"会话状态: {self.state}")
        return self.state

    async def login(self, api: "NexaApi", password: str) -> LoginResponse:
        """登录并保存凭据，成功后广播 authenticated."""
        response = await api.login(password)

        self.auth_required = response.auth_required
        if response.auth_required and response.token:
            self._token = response.token
            await self._store.save(self._token_key, response.token)
            self.state = SessionState.AUTHENTICATED
        elif response.auth_required:
            self.state = SessionState.UNAUTHENTICATED
        else:
            self.state = SessionState.AUTH_NOT_REQUIRED
        self._last_invalidated_at = None

        logger.info(f"登录完成: {self.state}")
        if self.can_fetch:
            self.authenticated.emit(self.state)
        return response

    async def logout(self) -> None:
        """主动登出：清除凭据并广播失效."""
        self._token = None
        if self.auth_required:
            self.state = SessionState.UNAUTHENTICATED
        self._last_invalidated_at = self._clock()
        logger.info("已登出")
        self.invalidated.emit("logout")
        await self._store.delete(self._token_key)

    async def invalidate(self, token_used: str | None) -> bool:
        """处理 401：清除凭据并广播失效，返回是否实际触发."""
        if self._token is not None and token_used != self._token:
            logger.debug("忽略针对旧凭据的 401")
            return False

        now = self._clock()
        if self._last_invalidated_at is not None and now - self._last_invalidated_at < self._window:
            logger.debug("会话失效已在处理中，忽略重复 401")
            return False

        # 同步完成状态切换，之后并发到达的 401 都会被上面的检查拦截
        self._last_invalidated_at = now
        self._token = None
        self.auth_required = True
        self.state = SessionState.UNAUTHENTICATED

        logger.info("会话已失效，清除凭据")
        self.invalidated.emit("unauthorized")
        await self._store.delete(self._token_key)
        return True

"""Nexa REST 接口客户端."""

import logging
from typing import Any, TypeVar
from urllib.parse import quote, urlparse

from pydantic import BaseModel
from pydantic import ValidationError as SchemaError

from feedsync.core.errors import HttpError, ValidationError
from feedsync.core.transport import TransportClient
from feedsync.core.views import View
from feedsync.models.auth import AuthStatus, LoginResponse
from feedsync.models.feed import Feed, FeedDirectory, FeedPayload
from feedsync.models.item import STATUS_FIELDS, Item, ItemsPage

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


def _parse(model: type[ModelT], data: Any) -> ModelT:
    """校验响应体，格式不符按服务端错误处理."""
    try:
        return model.model_validate(data or {})
    except SchemaError as e:
        msg = f"响应格式错误: {model.__name__}"
        raise HttpError(200, msg) from e


def _path_id(value: str) -> str:
    return quote(value, safe="")


def _build_payload(
    url: str,
    cron: str,
    desc: str | None,
    tags: list[str] | None,
    suspended: bool = False,
) -> dict[str, Any]:
    """校验并构造 feed 请求体."""
    parsed = urlparse(url.strip())
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        msg = "feed URL 必须是 http(s) 地址"
        raise ValidationError(msg)
    if not cron.strip():
        msg = "抓取计划不能为空"
        raise ValidationError(msg)

    payload = FeedPayload(
        url=url.strip(),
        cron=cron.strip(),
        desc=desc or "",
        tags=[tag.strip() for tag in tags or [] if tag.strip()],
        suspended=suspended,
    )
    return payload.model_dump()


class NexaApi:
    """Nexa 服务端 REST 接口."""

    def __init__(self, transport: TransportClient) -> None:
        self.transport = transport

    async def auth_status(self) -> bool:
        """探测服务端是否需要认证."""
        data = await self.transport.get("/api/auth-status")
        return _parse(AuthStatus, data).auth_required

    async def login(self, password: str) -> LoginResponse:
        """登录，密码错误时抛出 AuthError 但不触发会话失效."""
        data = await self.transport.post(
            "/api/login",
            json={"password": password},
            escalate_unauthorized=False,
        )
        return _parse(LoginResponse, data)

    async def list_feeds(self) -> FeedDirectory:
        """获取订阅目录（feed 列表和标签列表）."""
        data = await self.transport.get("/api/feeds")
        return _parse(FeedDirectory, data)

    async def list_tags(self) -> list[str]:
        """获取标签列表."""
        data = await self.transport.get("/api/tags")
        # 兼容 {"tags": [...]} 和直接返回数组两种格式
        tags = data.get("tags") if isinstance(data, dict) else data
        if not isinstance(tags, list):
            return []
        return [str(tag) for tag in tags if tag]

    async def add_feed(
        self,
        url: str,
        cron: str,
        desc: str | None = None,
        tags: list[str] | None = None,
    ) -> Feed:
        """添加订阅源."""
        payload = _build_payload(url, cron, desc, tags)
        data = await self.transport.post("/api/feed", json=payload)
        return _parse(Feed, (data or {}).get("feed"))

    async def update_feed(
        self,
        feed_id: str,
        url: str,
        cron: str,
        desc: str | None = None,
        tags: list[str] | None = None,
        suspended: bool = False,
    ) -> Feed:
        """更新订阅源."""
        payload = _build_payload(url, cron, desc, tags, suspended)
        data = await self.transport.put(f"/api/feed/{_path_id(feed_id)}", json=payload)
        return _parse(Feed, (data or {}).get("feed"))

    async def delete_feed(self, feed_id: str) -> bool:
        """删除订阅源."""
        data = await self.transport.delete(f"/api/feed/{_path_id(feed_id)}")
        if isinstance(data, dict) and "success" in data:
            return bool(data["success"])
        return True

    async def list_items(
        self,
        view: View,
        page: int = 1,
        size: int = 10,
        refresh: bool = False,
    ) -> ItemsPage:
        """获取视图对应的文章列表（含分页信息）."""
        params = view.query_params()
        if refresh:
            params.append(("refresh", "true"))
        params.extend([("page", str(page)), ("size", str(size))])

        data = await self.transport.get(f"/api/feed/{_path_id(view.scope)}", params=params)
        return _parse(ItemsPage, data)

    async def search_items(self, query: str, page: int = 1, size: int = 10) -> ItemsPage:
        """全文搜索."""
        return await self.list_items(View.search(query), page=page, size=size)

    async def get_item(self, item_id: str) -> Item:
        """获取单篇文章."""
        data = await self.transport.get(f"/api/item/{_path_id(item_id)}")
        return _parse(Item, (data or {}).get("item"))

    async def update_item_status(self, item_id: str, field: str, value: bool) -> bool:
        """更新文章状态（read / starred / liked）."""
        if field not in STATUS_FIELDS:
            msg = f"不支持的状态字段: {field}"
            raise ValidationError(msg)

        data = await self.transport.patch(
            f"/api/item/{_path_id(item_id)}",
            json={field: value},
        )
        if isinstance(data, dict) and "success" in data:
            return bool(data["success"])
        return True

"""测试用的 Nexa 服务端."""

import asyncio
from datetime import UTC, datetime
from typing import Any

from fastapi import FastAPI, Header, Query, Request
from fastapi.responses import JSONResponse


class ApiError(Exception):
    """以 {"error": ...} 形式返回的错误."""

    def __init__(self, status: int, message: str) -> None:
        super().__init__(message)
        self.status = status
        self.message = message


class FakeNexaServer:
    """内存中的 Nexa 服务端.

    可以按 key 挂起响应（列表请求的 key 是 feed ID 或 "q:<查询>"，
    状态修改的 key 是 "item:<ID>"），用来制造乱序完成。
    """

    def __init__(self, password: str | None = None) -> None:
        self.password = password
        self.valid_tokens: set[str] = set()
        self.feeds: dict[str, dict[str, Any]] = {}
        self.items: list[dict[str, Any]] = []
        self.gates: dict[str, asyncio.Event] = {}
        self.waiting: set[str] = set()
        self.requests: list[tuple[str, str]] = []
        self.fail_list_status: int | None = None
        self.fail_patch_status: int | None = None
        self.patch_success = True
        self.directory_tags = True
        self._token_counter = 0
        self.app = self._build_app()

    # 数据准备

    def seed_feed(
        self,
        feed_id: str,
        title: str = "",
        items: int = 0,
        tags: list[str] | None = None,
        read: int = 0,
    ) -> None:
        """添加一个 feed 及其文章，前 read 篇为已读."""
        self.feeds[feed_id] = {
            "id": feed_id,
            "title": title or f"Feed {feed_id}",
            "desc": "",
            "link": f"https://{feed_id}.example.com/feed.xml",
            "tags": list(tags or []),
            "cron": "*/30 * * * *",
            "suspended": False,
        }
        for index in range(items):
            self.items.append(
                {
                    "id": f"{feed_id}-{index}",
                    "feed_id": feed_id,
                    "title": f"{feed_id} item {index}",
                    "content": f"<p>content {index}</p>",
                    "description": None,
                    "link": f"https://{feed_id}.example.com/{index}",
                    "guid": f"guid-{feed_id}-{index}",
                    "pub_date": datetime.now(UTC).isoformat(),
                    "image": "",
                    "read": index < read,
                    "starred": False,
                    "liked": False,
                }
            )

    def issue_token(self) -> str:
        self._token_counter += 1
        token = f"token-{self._token_counter}"
        self.valid_tokens.add(token)
        return token

    def hold(self, key: str) -> asyncio.Event:
        """挂起 key 对应的请求，直到 release."""
        gate = asyncio.Event()
        self.gates[key] = gate
        return gate

    def release(self, key: str) -> None:
        gate = self.gates.pop(key, None)
        if gate is not None:
            gate.set()

    def count(self, method: str, prefix: str) -> int:
        """统计请求次数."""
        return sum(1 for m, path in self.requests if m == method and path.startswith(prefix))

    def item(self, item_id: str) -> dict[str, Any]:
        for item in self.items:
            if item["id"] == item_id:
                return item
        raise ApiError(404, "item not found")

    def unread_count(self, feed_id: str) -> int:
        return sum(1 for item in self.items if item["feed_id"] == feed_id and not item["read"])

    # 路由

    def _check_auth(self, authorization: str | None) -> None:
        if self.password is None:
            return
        if not authorization:
            raise ApiError(401, "authorization required")
        if not authorization.startswith("Bearer "):
            raise ApiError(401, "invalid authorization format")
        if authorization[len("Bearer ") :] not in self.valid_tokens:
            raise ApiError(401, "invalid or expired token")

    async def _wait_gate(self, key: str) -> None:
        gate = self.gates.get(key)
        if gate is not None:
            self.waiting.add(key)
            await gate.wait()

    def _feed_json(self, feed: dict[str, Any]) -> dict[str, Any]:
        return {**feed, "unread_count": self.unread_count(feed["id"])}

    def _build_app(self) -> FastAPI:
        app = FastAPI()
        server = self

        @app.exception_handler(ApiError)
        async def handle_api_error(request: Request, exc: ApiError) -> JSONResponse:
            return JSONResponse(status_code=exc.status, content={"error": exc.message})

        @app.middleware("http")
        async def record_request(request: Request, call_next: Any) -> Any:
            server.requests.append((request.method, request.url.path))
            return await call_next(request)

        @app.get("/api/auth-status")
        async def auth_status() -> dict:
            return {"auth_required": server.password is not None}

        @app.post("/api/login")
        async def login(body: dict) -> dict:
            if server.password is None:
                return {"token": "", "auth_required": False}
            if body.get("password") != server.password:
                raise ApiError(401, "invalid password")
            return {"token": server.issue_token(), "auth_required": True}

        @app.get("/api/feeds")
        async def list_feeds(authorization: str | None = Header(None)) -> dict:
            server._check_auth(authorization)
            feeds = [server._feed_json(feed) for feed in server.feeds.values()]
            tags = sorted({tag for feed in server.feeds.values() for tag in feed["tags"]})
            await server._wait_gate("feeds")
            return {"feeds": feeds, "tags": tags if server.directory_tags else None}

        @app.get("/api/tags")
        async def list_tags(authorization: str | None = Header(None)) -> dict:
            server._check_auth(authorization)
            return {"tags": sorted({tag for feed in server.feeds.values() for tag in feed["tags"]})}

        @app.post("/api/feed")
        async def add_feed(body: dict, authorization: str | None = Header(None)) -> dict:
            server._check_auth(authorization)
            feed_id = f"feed-{len(server.feeds) + 1}"
            server.feeds[feed_id] = {
                "id": feed_id,
                "title": body.get("desc") or body["url"],
                "desc": body.get("desc", ""),
                "link": body["url"],
                "tags": body.get("tags") or [],
                "cron": body["cron"],
                "suspended": body.get("suspended", False),
            }
            return {"feed": server._feed_json(server.feeds[feed_id])}

        @app.put("/api/feed/{feed_id}")
        async def update_feed(
            feed_id: str, body: dict, authorization: str | None = Header(None)
        ) -> dict:
            server._check_auth(authorization)
            feed = server.feeds.get(feed_id)
            if feed is None:
                raise ApiError(404, "feed not found")
            feed.update(
                link=body["url"],
                desc=body.get("desc", ""),
                cron=body["cron"],
                tags=body.get("tags") or [],
                suspended=body.get("suspended", False),
            )
            return {"feed": server._feed_json(feed)}

        @app.delete("/api/feed/{feed_id}")
        async def delete_feed(feed_id: str, authorization: str | None = Header(None)) -> dict:
            server._check_auth(authorization)
            if feed_id not in server.feeds:
                raise ApiError(404, "feed not found")
            del server.feeds[feed_id]
            server.items = [item for item in server.items if item["feed_id"] != feed_id]
            return {"success": True}

        @app.get("/api/feed/{feed_id}")
        async def list_items(
            feed_id: str,
            authorization: str | None = Header(None),
            tags: list[str] = Query([]),
            unread: bool = False,
            starred: bool = False,
            liked: bool = False,
            today: bool = False,
            refresh: bool = False,
            q: str = "",
            page: int = 1,
            size: int = 10,
        ) -> dict:
            server._check_auth(authorization)
            await server._wait_gate(f"q:{q}" if q else feed_id)
            if server.fail_list_status is not None:
                raise ApiError(server.fail_list_status, "list failed")

            if feed_id == "all":
                feed_ids = {
                    fid
                    for fid, feed in server.feeds.items()
                    if not tags or set(tags) & set(feed["tags"])
                }
            elif feed_id in server.feeds:
                feed_ids = {feed_id}
            else:
                raise ApiError(404, "feed not found")

            selected = [item for item in server.items if item["feed_id"] in feed_ids]
            if unread:
                selected = [item for item in selected if not item["read"]]
            if starred:
                selected = [item for item in selected if item["starred"]]
            if liked:
                selected = [item for item in selected if item["liked"]]
            if q:
                needle = q.lower()
                selected = [
                    item
                    for item in selected
                    if needle in item["title"].lower() or needle in item["content"].lower()
                ]

            offset = (page - 1) * size
            return {
                "items": selected[offset : offset + size],
                "pagination": {"total": len(selected), "page": page, "size": size},
            }

        @app.get("/api/item/{item_id}")
        async def get_item(item_id: str, authorization: str | None = Header(None)) -> dict:
            server._check_auth(authorization)
            return {"item": server.item(item_id)}

        @app.patch("/api/item/{item_id}")
        async def update_item(
            item_id: str, body: dict, authorization: str | None = Header(None)
        ) -> dict:
            server._check_auth(authorization)
            await server._wait_gate(f"item:{item_id}")
            if server.fail_patch_status is not None:
                raise ApiError(server.fail_patch_status, "update failed")
            if not server.patch_success:
                return {"success": False}
            item = server.item(item_id)
            for field in ("read", "starred", "liked"):
                if field in body:
                    item[field] = bool(body[field])
            return {"success": True}

        return app

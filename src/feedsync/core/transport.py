"""HTTP 传输层 - 注入凭据、分类错误、上报 401."""

import logging
from typing import Any

import httpx

from feedsync.core.errors import AuthError, HttpError, NetworkError
from feedsync.core.session import SessionManager

logger = logging.getLogger(__name__)


def extract_error_message(response: httpx.Response) -> str:
    """从 JSON 错误体中提取消息，否则返回通用消息."""
    try:
        data = response.json()
    except ValueError:
        data = None

    if isinstance(data, dict):
        message = data.get("error") or data.get("message")
        if isinstance(message, str) and message:
            return message

    return f"请求失败: {response.status_code}"


class TransportClient:
    """对 httpx.AsyncClient 的薄封装."""

    def __init__(
        self,
        base_url: str,
        session: SessionManager,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.session = session
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            transport=transport,
        )

    async def close(self) -> None:
        """关闭客户端."""
        await self._client.aclose()

    def _get_headers(self, token: str | None) -> dict[str, str]:
        """获取带认证的请求头."""
        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: Any = None,
        json: Any = None,
        escalate_unauthorized: bool = True,
    ) -> Any:
        """发送请求并返回解析后的 JSON.

        401 会先交给会话管理器广播失效再抛出 AuthError；登录接口传入
        escalate_unauthorized=False，密码错误不应拆除会话。
        """
        token = self.session.token
        try:
            response = await self._client.request(
                method,
                path,
                params=params,
                json=json,
                headers=self._get_headers(token),
            )
        except httpx.HTTPError as e:
            logger.warning(f"请求失败: {method} {path}: {e!r}")
            raise NetworkError(f"网络请求失败: {e}") from e

        if response.status_code == 401:
            message = extract_error_message(response)
            if escalate_unauthorized:
                await self.session.invalidate(token)
            raise AuthError(message)

        if not response.is_success:
            message = extract_error_message(response)
            logger.warning(f"请求返回错误: {method} {path}: {response.status_code} {message}")
            raise HttpError(response.status_code, message)

        if not response.content:
            return None

        try:
            return response.json()
        except ValueError as e:
            raise HttpError(response.status_code, "响应不是合法的 JSON") from e

    async def get(self, path: str, **kwargs: Any) -> Any:
        return await self.request("GET", path, **kwargs)

    async def post(self, path: str, **kwargs: Any) -> Any:
        return await self.request("POST", path, **kwargs)

    async def put(self, path: str, **kwargs: Any) -> Any:
        return await self.request("PUT", path, **kwargs)

    async def patch(self, path: str, **kwargs: Any) -> Any:
        return await self.request("PATCH", path, **kwargs)

    async def delete(self, path: str, **kwargs: Any) -> Any:
        return await self.request("DELETE", path, **kwargs)

"""同步层错误类型."""


class FeedSyncError(Exception):
    """同步层错误基类."""


class NetworkError(FeedSyncError):
    """请求未能完成（连接失败、超时等）."""


class HttpError(FeedSyncError):
    """服务端返回非 2xx 状态."""

    def __init__(self, status: int, message: str) -> None:
        super().__init__(message)
        self.status = status
        self.message = message

    def __repr__(self) -> str:
        return f"{type(self).__name__}(status={self.status}, message={self.message!r})"


class AuthError(HttpError):
    """认证失败（401），由会话管理器统一处理."""

    def __init__(self, message: str = "认证失败，请重新登录") -> None:
        super().__init__(401, message)


class ValidationError(FeedSyncError):
    """本地可检测的输入错误，不会发往服务端."""

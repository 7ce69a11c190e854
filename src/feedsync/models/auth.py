"""认证相关模型."""

from pydantic import BaseModel


class AuthStatus(BaseModel):
    """认证需求探测响应."""

    auth_required: bool = False


class LoginResponse(BaseModel):
    """登录响应."""

    token: str = ""
    auth_required: bool = False

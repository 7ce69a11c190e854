"""Item 文章模型与分页."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field, field_validator

# 可被客户端修改的状态字段；read=True 表示已读
StatusField = Literal["read", "starred", "liked"]
STATUS_FIELDS: tuple[str, ...] = ("read", "starred", "liked")


class Item(BaseModel):
    """订阅源中的单篇文章."""

    id: str = Field(description="文章 ID，状态修改的主键")
    feed_id: str = Field(default="", description="所属 Feed")
    title: str = Field(default="", description="标题")
    content: str = Field(default="", description="HTML 内容")
    description: str = Field(default="", description="摘要")
    link: str = Field(default="", description="原文链接")
    guid: str = Field(default="", description="源提供的 GUID，仅用于显示去重")
    pub_date: datetime | None = Field(default=None, description="发布时间")
    image: str = Field(default="", description="封面图")
    read: bool = Field(default=False, description="是否已读")
    starred: bool = Field(default=False, description="是否收藏")
    liked: bool = Field(default=False, description="是否喜欢")

    @field_validator("content", "description", "image", "link", "guid", "title", mode="before")
    @classmethod
    def _none_as_empty(cls, value: object) -> object:
        return "" if value is None else value


class Pagination(BaseModel):
    """分页窗口：服务端总数与客户端消费游标."""

    total: int = 0
    page: int = 1
    size: int = 10

    @property
    def exhausted(self) -> bool:
        """是否已加载完全部数据."""
        return self.page * self.size >= self.total

    def next_page(self) -> int:
        """下一页页码."""
        return self.page + 1


class ItemsPage(BaseModel):
    """文章列表响应."""

    items: list[Item] = Field(default_factory=list)
    pagination: Pagination | None = None

    @field_validator("items", mode="before")
    @classmethod
    def _none_as_empty(cls, value: object) -> object:
        return [] if value is None else value

    def resolved_pagination(self, page: int, size: int) -> Pagination:
        """服务端未返回分页信息时，视为单页且已耗尽."""
        if self.pagination is not None:
            return self.pagination
        return Pagination(total=len(self.items), page=page, size=max(size, len(self.items), 1))

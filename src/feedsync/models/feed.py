"""Feed 订阅源模型."""

from urllib.parse import urlparse

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


class Feed(BaseModel):
    """订阅源（服务端权威数据的本地镜像）."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(description="服务端分配的 feed ID，创建后不变")
    title: str = Field(default="", description="Feed 标题")
    link: str = Field(default="", description="Feed URL")
    description: str = Field(
        default="",
        validation_alias=AliasChoices("desc", "description"),
        description="描述",
    )
    tags: list[str] = Field(default_factory=list, description="标签")
    unread_count: int = Field(default=0, ge=0, description="未读数")
    schedule: str = Field(
        default="",
        validation_alias=AliasChoices("cron", "schedule"),
        description="抓取计划（cron 表达式）",
    )
    suspended: bool = Field(default=False, description="是否暂停抓取")

    @field_validator("tags", mode="before")
    @classmethod
    def _split_tags(cls, value: object) -> object:
        # 服务端有时以逗号分隔的字符串返回标签
        if value is None:
            return []
        if isinstance(value, str):
            return [tag.strip() for tag in value.split(",") if tag.strip()]
        return value

    @field_validator("unread_count", mode="before")
    @classmethod
    def _clamp_unread(cls, value: object) -> object:
        if isinstance(value, int) and value < 0:
            return 0
        return value

    @property
    def display_name(self) -> str:
        """显示名称：标题，其次链接域名."""
        if self.title:
            return self.title
        host = urlparse(self.link).hostname if self.link else None
        return host or "Unnamed Feed"


class FeedDirectory(BaseModel):
    """订阅目录列表响应."""

    feeds: list[Feed] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)

    @field_validator("feeds", "tags", mode="before")
    @classmethod
    def _none_as_empty(cls, value: object) -> object:
        return [] if value is None else value


class FeedPayload(BaseModel):
    """创建/更新订阅源的请求体."""

    url: str
    cron: str
    desc: str = ""
    tags: list[str] = Field(default_factory=list)
    suspended: bool = False

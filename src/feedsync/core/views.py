"""视图选择器：真实 feed、系统伪视图或搜索."""

from dataclasses import dataclass, field


class SystemView:
    """系统内置的伪视图 ID."""

    ALL = "all"
    UNREAD = "unread"
    STARRED = "starred"
    LIKED = "liked"
    TODAY = "today"


SYSTEM_VIEW_IDS: tuple[str, ...] = (
    SystemView.ALL,
    SystemView.UNREAD,
    SystemView.STARRED,
    SystemView.LIKED,
    SystemView.TODAY,
)


def is_system_view(feed_id: str | None) -> bool:
    """检查是否是系统内置视图."""
    if not feed_id:
        return False
    return feed_id in SYSTEM_VIEW_IDS


@dataclass(frozen=True)
class View:
    """当前激活的数据源."""

    kind: str  # feed | system | search
    id: str = SystemView.ALL
    query: str = ""
    tags: tuple[str, ...] = field(default=())

    @classmethod
    def feed(cls, feed_id: str) -> "View":
        if is_system_view(feed_id):
            return cls.system(feed_id)
        return cls(kind="feed", id=feed_id)

    @classmethod
    def system(cls, view_id: str = SystemView.ALL, tags: tuple[str, ...] = ()) -> "View":
        if not is_system_view(view_id):
            msg = f"未知的系统视图: {view_id}"
            raise ValueError(msg)
        return cls(kind="system", id=view_id, tags=tuple(tags))

    @classmethod
    def all(cls) -> "View":
        return cls.system(SystemView.ALL)

    @classmethod
    def tagged(cls, *tags: str) -> "View":
        """按标签过滤的聚合视图."""
        return cls.system(SystemView.ALL, tags=tags)

    @classmethod
    def search(cls, query: str) -> "View":
        return cls(kind="search", id=SystemView.ALL, query=query)

    @property
    def is_search(self) -> bool:
        return self.kind == "search"

    def references(self, feed_id: str) -> bool:
        """视图是否指向给定的真实 feed."""
        return self.kind == "feed" and self.id == feed_id

    @property
    def scope(self) -> str:
        """请求路径中的 feed 范围，伪视图和搜索都落在 all 上."""
        if self.kind == "feed":
            return self.id
        return SystemView.ALL

    def query_params(self) -> list[tuple[str, str]]:
        """视图对应的过滤参数（不含分页）."""
        params: list[tuple[str, str]] = [("tags", tag) for tag in self.tags]
        if self.kind == "system" and self.id != SystemView.ALL:
            params.append((self.id, "true"))
        if self.is_search:
            params.append(("q", self.query))
        return params

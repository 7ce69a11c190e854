"""数据模型."""

from feedsync.models.auth import AuthStatus, LoginResponse
from feedsync.models.credential import StoredCredential
from feedsync.models.feed import Feed, FeedDirectory, FeedPayload
from feedsync.models.item import STATUS_FIELDS, Item, ItemsPage, Pagination, StatusField

__all__ = [
    "STATUS_FIELDS",
    "AuthStatus",
    "Feed",
    "FeedDirectory",
    "FeedPayload",
    "Item",
    "ItemsPage",
    "LoginResponse",
    "Pagination",
    "StatusField",
    "StoredCredential",
]

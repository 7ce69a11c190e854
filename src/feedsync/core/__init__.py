"""核心同步逻辑."""

from feedsync.core.api import NexaApi
from feedsync.core.coordinator import FetchMode, LoadState, QueryCoordinator
from feedsync.core.directory import FeedDirectoryCache
from feedsync.core.engine import ReaderEngine
from feedsync.core.errors import AuthError, FeedSyncError, HttpError, NetworkError, ValidationError
from feedsync.core.events import EventChannel
from feedsync.core.mutations import MutationFailure, OptimisticMutationApplier
from feedsync.core.session import SessionManager, SessionState
from feedsync.core.storage import CredentialStore, MemoryCredentialStore, SqlCredentialStore
from feedsync.core.transport import TransportClient
from feedsync.core.views import SYSTEM_VIEW_IDS, SystemView, View, is_system_view

__all__ = [
    "SYSTEM_VIEW_IDS",
    "AuthError",
    "CredentialStore",
    "EventChannel",
    "FeedDirectoryCache",
    "FeedSyncError",
    "FetchMode",
    "HttpError",
    "LoadState",
    "MemoryCredentialStore",
    "MutationFailure",
    "NetworkError",
    "NexaApi",
    "OptimisticMutationApplier",
    "QueryCoordinator",
    "ReaderEngine",
    "SessionManager",
    "SessionState",
    "SqlCredentialStore",
    "SystemView",
    "TransportClient",
    "ValidationError",
    "View",
    "is_system_view",
]

"""测试配置和 fixtures."""

from collections.abc import AsyncGenerator

import httpx
import pytest
from fake_server import FakeNexaServer
from stores import CountingStore

from feedsync.config import Settings
from feedsync.core.engine import ReaderEngine


@pytest.fixture
def settings() -> Settings:
    """测试用配置（不读取 .env）."""
    return Settings(
        _env_file=None,
        server_url="http://test",
        page_size=10,
        invalidation_window_seconds=2.0,
    )


@pytest.fixture
def server() -> FakeNexaServer:
    """带示例数据的服务端：a 有 15 篇（5 篇已读），b 有 5 篇，c 有 25 篇."""
    server = FakeNexaServer()
    server.seed_feed("a", "Alpha", items=15, tags=["tech"], read=5)
    server.seed_feed("b", "Beta", items=5, tags=["news"])
    server.seed_feed("c", "Gamma", items=25, tags=["tech", "daily"])
    return server


@pytest.fixture
def store() -> CountingStore:
    return CountingStore()


@pytest.fixture
async def engine(
    settings: Settings, store: CountingStore, server: FakeNexaServer
) -> AsyncGenerator[ReaderEngine, None]:
    """未启动的引擎，通过 ASGITransport 连接测试服务端."""
    engine = ReaderEngine(
        settings,
        store=store,
        transport=httpx.ASGITransport(app=server.app),
    )
    yield engine
    await engine.close()


@pytest.fixture
async def started(engine: ReaderEngine) -> ReaderEngine:
    """已完成冷启动的引擎."""
    await engine.start()
    return engine

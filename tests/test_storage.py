"""测试凭据持久化."""

from pathlib import Path

from feedsync.core.storage import SqlCredentialStore


async def test_sql_store_round_trip(tmp_path: Path) -> None:
    url = f"sqlite+aiosqlite:///{tmp_path / 'credentials.db'}"
    store = SqlCredentialStore(url)

    assert await store.load("nexa_token") is None
    await store.save("nexa_token", "first")
    await store.save("nexa_token", "second")
    assert await store.load("nexa_token") == "second"
    await store.close()

    # 重新打开后凭据仍然存在
    reopened = SqlCredentialStore(url)
    assert await reopened.load("nexa_token") == "second"
    await reopened.delete("nexa_token")
    await reopened.delete("nexa_token")
    assert await reopened.load("nexa_token") is None
    await reopened.close()


async def test_init_is_idempotent(tmp_path: Path) -> None:
    store = SqlCredentialStore(f"sqlite+aiosqlite:///{tmp_path / 'credentials.db'}")

    factory = await store.init()

    assert await store.init() is factory
    await store.close()

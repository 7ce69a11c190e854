"""测试用的凭据存储."""

from feedsync.core.storage import MemoryCredentialStore


class CountingStore(MemoryCredentialStore):
    """记录保存和删除次数的凭据存储."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        super().__init__(initial)
        self.deletes = 0
        self.saves = 0

    async def save(self, key: str, value: str) -> None:
        self.saves += 1
        await super().save(key, value)

    async def delete(self, key: str) -> None:
        self.deletes += 1
        await super().delete(key)

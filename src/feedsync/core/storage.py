"""认证凭据持久化."""

import logging
from abc import ABC, abstractmethod
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel

from feedsync.models.credential import StoredCredential

logger = logging.getLogger(__name__)


class CredentialStore(ABC):
    """凭据存储抽象基类."""

    @abstractmethod
    async def load(self, key: str) -> str | None:
        """读取凭据，不存在时返回 None."""
        ...

    @abstractmethod
    async def save(self, key: str, value: str) -> None:
        """保存凭据."""
        ...

    @abstractmethod
    async def delete(self, key: str) -> None:
        """删除凭据."""
        ...

    async def close(self) -> None:
        """释放资源."""


class MemoryCredentialStore(CredentialStore):
    """进程内凭据存储."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self.values: dict[str, str] = dict(initial or {})

    async def load(self, key: str) -> str | None:
        return self.values.get(key)

    async def save(self, key: str, value: str) -> None:
        self.values[key] = value

    async def delete(self, key: str) -> None:
        self.values.pop(key, None)


class SqlCredentialStore(CredentialStore):
    """基于 SQLModel 键值表的凭据存储."""

    def __init__(self, database_url: str) -> None:
        self.database_url = database_url
        self._engine: AsyncEngine | None = None
        self._session_factory: async_sessionmaker[AsyncSession] | None = None

    async def init(self) -> async_sessionmaker[AsyncSession]:
        """初始化数据库，创建凭据表，返回会话工厂."""
        if self._session_factory is not None:
            return self._session_factory

        self._engine = create_async_engine(self.database_url, echo=False)
        self._session_factory = async_sessionmaker(
            self._engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

        async with self._engine.begin() as conn:
            await conn.run_sync(SQLModel.metadata.create_all)
        logger.debug(f"凭据存储已初始化: {self.database_url}")
        return self._session_factory

    async def _session(self) -> AsyncSession:
        session_factory = await self.init()
        return session_factory()

    async def load(self, key: str) -> str | None:
        async with await self._session() as session:
            record = await session.get(StoredCredential, key)
            return record.value if record else None

    async def save(self, key: str, value: str) -> None:
        async with await self._session() as session:
            record = await session.get(StoredCredential, key)
            if record:
                record.value = value
                record.updated_at = datetime.utcnow()
            else:
                session.add(StoredCredential(key=key, value=value))
            await session.commit()

    async def delete(self, key: str) -> None:
        async with await self._session() as session:
            record = await session.get(StoredCredential, key)
            if record:
                await session.delete(record)
                await session.commit()

    async def close(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
            self._session_factory = None

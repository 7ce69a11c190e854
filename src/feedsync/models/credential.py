"""持久化凭据存储模型."""

from datetime import datetime

from sqlmodel import Field, SQLModel


class StoredCredential(SQLModel, table=True):
    """按固定键保存的凭据."""

    __tablename__ = "credentials"  # type: ignore[assignment]

    key: str = Field(primary_key=True, description="存储键")
    value: str = Field(description="凭据值")
    updated_at: datetime = Field(default_factory=datetime.utcnow)

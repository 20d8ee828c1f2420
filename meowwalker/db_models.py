"""
Database models using SQLModel
Provides type-safe ORM with Pydantic validation
"""

from sqlmodel import SQLModel, Field
from datetime import datetime, timezone


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class KeyValueRecord(SQLModel, table=True):
    """Durable record holding one serialized JSON document"""

    __tablename__ = "kv_records"

    key: str = Field(primary_key=True, max_length=64)
    value: str  # JSON document
    updated_at: datetime = Field(default_factory=utc_now)

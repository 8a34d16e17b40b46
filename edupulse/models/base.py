# base.py
from datetime import datetime, timezone

from sqlalchemy import Column, String, DateTime
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

Base = declarative_base()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TimestampMixin:
    # Python-side defaults keep the values loaded after flush (no lazy refresh under asyncio)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)


class TenantModel(Base):
    """
    A base mixin for multi-tenant rows.
    Every roster row belongs to the teacher account that created it.
    """
    __abstract__ = True

    owner_id = Column(String(64), nullable=False, index=True)

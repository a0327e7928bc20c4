"""
Module: stock_kernel.db.base
Responsibility: Declarative base for the processed-document cache tables.
Architecture position: Kernel > DB.  MUST NOT import from models/ or outer
    layers; models import from here.

Invariants enforced:
    - Primary keys are uuid4 values kept as 36-character strings, so the
      same schema works on SQLite (tests) and PostgreSQL.
    - Constraint and index names follow ``NAMING_CONVENTION`` and are
      stable across dialects.
    - ``RecordedBase.recorded_at`` is set by the database, never the caller.
"""

from datetime import datetime
from typing import ClassVar
from uuid import UUID, uuid4

from sqlalchemy import DateTime, MetaData, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator

NAMING_CONVENTION = {
    "ix": "ix_%(table_name)s_%(column_0_name)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s_%(column_1_name)s",
    "pk": "pk_%(table_name)s",
}


class UUIDString(TypeDecorator):
    """``uuid.UUID`` in Python, ``VARCHAR(36)`` in the database."""

    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        return None if value is None else str(value)

    def process_result_value(self, value, dialect):
        return None if value is None else UUID(value)


class Base(DeclarativeBase):
    """Every table gets a uuid4 ``id``; ``str`` columns default to 100 chars."""

    metadata = MetaData(naming_convention=NAMING_CONVENTION)

    type_annotation_map: ClassVar[dict] = {
        UUID: UUIDString(),
        str: String(100),
        datetime: DateTime(timezone=True),
    }

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)


class RecordedBase(Base):
    """Abstract base for rows that record when something happened."""

    __abstract__ = True

    recorded_at: Mapped[datetime] = mapped_column(server_default=func.now())

"""
SQLAlchemy declarative base and common model mixins.

This module provides the SQLAlchemy DeclarativeBase, common mixins for
timestamps, UUID keys and soft deletion through an ``is_active`` flag.
Defaults are computed in Python as well as declared on the server so that
values are available on the instance right after a flush, which async
sessions cannot lazily refresh.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, DateTime, Uuid, func, true
from sqlalchemy.ext.asyncio import AsyncAttrs
from sqlalchemy.orm import DeclarativeBase, Mapped, declared_attr, mapped_column

from printfarm.core.logging import get_logger

logger = get_logger(__name__)


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


class Base(AsyncAttrs, DeclarativeBase):
    """
    Base class for all SQLAlchemy models with async support.

    Provides async attribute loading and a primary-key based repr.
    """

    __abstract__ = True

    def __repr__(self) -> str:
        """
        Generate string representation of model instance.

        Returns:
            String representation with primary key values
        """
        pk_values = []
        for column in self.__table__.primary_key.columns:
            value = getattr(self, column.key, None)
            if value is not None:
                pk_values.append(f"{column.key}={value!r}")

        pk_str = ", ".join(pk_values) if pk_values else "no primary key"
        return f"<{self.__class__.__name__}({pk_str})>"


class TimestampMixin:
    """
    Mixin for automatic timestamp management.

    Adds created_at and updated_at columns maintained on insert and on
    every ORM update.
    """

    @declared_attr
    def created_at(cls) -> Mapped[datetime]:
        """Timestamp when the record was created."""
        return mapped_column(
            DateTime(timezone=True),
            nullable=False,
            default=utc_now,
            server_default=func.now(),
            comment="Timestamp when record was created",
        )

    @declared_attr
    def updated_at(cls) -> Mapped[datetime]:
        """Timestamp when the record was last updated."""
        return mapped_column(
            DateTime(timezone=True),
            nullable=False,
            default=utc_now,
            onupdate=utc_now,
            server_default=func.now(),
            comment="Timestamp when record was last updated",
        )


class UUIDMixin:
    """
    Mixin for UUID primary key.

    Uses the dialect-neutral Uuid type: native UUID on PostgreSQL, CHAR(32)
    on SQLite.
    """

    @declared_attr
    def id(cls) -> Mapped[uuid.UUID]:
        """UUID primary key, generated with uuid4 if not provided."""
        return mapped_column(
            Uuid,
            primary_key=True,
            default=uuid.uuid4,
            nullable=False,
            comment="Unique identifier for the record",
        )


class ActiveFlagMixin:
    """
    Mixin for soft delete through an is_active flag.

    Reference records (colors, parts, templates) are never physically
    deleted once created; deactivation hides them from new orders while
    keeping historical references intact.
    """

    @declared_attr
    def is_active(cls) -> Mapped[bool]:
        """False once the record has been soft deleted."""
        return mapped_column(
            Boolean,
            nullable=False,
            default=True,
            server_default=true(),
            index=True,
            comment="Soft delete flag; inactive records cannot be attached",
        )

    def deactivate(self) -> None:
        """Mark record as inactive."""
        if self.is_active:
            self.is_active = False
            logger.info(
                "Record deactivated",
                model=self.__class__.__name__,
                record_id=str(getattr(self, "id", None)),
            )

    def activate(self) -> None:
        """Restore a deactivated record."""
        if not self.is_active:
            self.is_active = True
            logger.info(
                "Record reactivated",
                model=self.__class__.__name__,
                record_id=str(getattr(self, "id", None)),
            )


class BaseModel(Base, UUIDMixin, TimestampMixin):
    """
    Base model with UUID primary key and timestamps.

    Example:
        class Part(BaseModel):
            __tablename__ = "parts"

            part_code: Mapped[str] = mapped_column(String(50), unique=True)
    """

    __abstract__ = True


class ReferenceModel(BaseModel, ActiveFlagMixin):
    """Base model for soft-deletable reference data."""

    __abstract__ = True

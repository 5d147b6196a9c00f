"""Base model with common fields and mixins."""

import secrets
import time
from datetime import UTC, datetime

from sqlalchemy import JSON, DateTime, String
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base

# JSON on every dialect, JSONB on PostgreSQL
JSONType = JSON().with_variant(JSONB(), "postgresql")


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(UTC)


def generate_object_id() -> str:
    """
    Generate a 24-character hexadecimal record identifier.

    Layout: 4-byte big-endian seconds timestamp followed by 8 random bytes,
    so identifiers created later sort after earlier ones at second precision.
    """
    return f"{int(time.time()) & 0xFFFFFFFF:08x}{secrets.token_hex(8)}"


class TimestampMixin:
    """Mixin that adds created_at and updated_at timestamps."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
        index=True,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
    )


class DatedMixin:
    """
    Mixin that adds date_created and last_updated timestamps.

    last_updated is refreshed by the normalization functions in
    db.normalization, not by the ORM.
    """

    date_created: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
        index=True,
    )
    last_updated: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
    )


class BaseModel(Base):
    """Base model with a 24-hex string primary key."""

    __abstract__ = True

    id: Mapped[str] = mapped_column(
        String(24),
        primary_key=True,
        default=generate_object_id,
        nullable=False,
    )


class SluggedMixin:
    """Mixin for records addressed by an opaque unique id and a derived slug."""

    unique_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    slug: Mapped[str | None] = mapped_column(String(500), unique=True, nullable=True)

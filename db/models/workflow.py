"""
SQLAlchemy models for workflow bookkeeping.

- Stage: Ordered workflow stage
- FormSubmission: Payload submitted against a form
- PageMigrationLog: Record of a page migration
"""

from datetime import datetime

from sqlalchemy import DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from db.models.base_model import (
    BaseModel,
    DatedMixin,
    JSONType,
    SluggedMixin,
    TimestampMixin,
    utcnow,
)


class Stage(BaseModel, DatedMixin, SluggedMixin):
    """Workflow stage. orderNumber is unique and assigned max+1 when omitted."""

    __tablename__ = "stages"

    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    order_number: Mapped[int] = mapped_column(Integer, unique=True, nullable=False)

    @property
    def absolute_url(self) -> str:
        return f"/stage/detail/{self.slug}"


class FormSubmission(BaseModel, TimestampMixin, SluggedMixin):
    """Submitted form data."""

    __tablename__ = "form_submissions"

    form_id: Mapped[str] = mapped_column(String(24), nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(255), default="Untitled Form", nullable=False)
    category: Mapped[str] = mapped_column(
        String(255),
        default="Uncategorized",
        nullable=False,
    )
    data: Mapped[dict] = mapped_column(JSONType, default=dict, nullable=False)
    submitted_by: Mapped[str | None] = mapped_column(String(24), nullable=True)


class PageMigrationLog(BaseModel, DatedMixin, SluggedMixin):
    """Audit entry for a page migration."""

    __tablename__ = "page_migration_logs"

    page_id: Mapped[str] = mapped_column(String(24), nullable=False, index=True)
    migrated_by: Mapped[str | None] = mapped_column(String(24), nullable=True)
    migration_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

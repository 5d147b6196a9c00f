"""
SQLAlchemy models for excel-based data intake.

- ExcelFile: An uploaded workbook plus its metadata
- ExcelDataRow: One parsed row of a workbook, tracked until sent downstream
"""

from datetime import datetime
from typing import Any

from sqlalchemy import Boolean, DateTime, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from db.models.base_model import (
    BaseModel,
    DatedMixin,
    JSONType,
    TimestampMixin,
    utcnow,
)


class ExcelFile(BaseModel, DatedMixin):
    """
    Uploaded excel workbook.

    `studies` is the single canonical study list; `Studies` and
    `selectedStudies` in API responses are read-only views of it.
    """

    __tablename__ = "excel_files"

    excel_name: Mapped[str] = mapped_column(
        String(255),
        default="Unnamed Excel",
        nullable=False,
    )
    file_name: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
        comment="Original upload filename",
    )
    file_path: Mapped[str | None] = mapped_column(
        String(1000),
        nullable=True,
        comment="Storage path returned by the storage backend",
    )
    uploaded_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
    )
    selected_columns: Mapped[Any] = mapped_column(JSONType, nullable=True)
    temporary: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    file_uploaded: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    unique_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    studies: Mapped[list] = mapped_column(JSONType, default=list, nullable=False)

    rows: Mapped[list["ExcelDataRow"]] = relationship(
        "ExcelDataRow",
        back_populates="excel_file",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<ExcelFile {self.excel_name}>"


class ExcelDataRow(BaseModel, TimestampMixin):
    """Single row parsed from an ExcelFile."""

    __tablename__ = "excel_data_rows"

    excel_file_id: Mapped[str] = mapped_column(
        String(24),
        ForeignKey("excel_files.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    row_data: Mapped[dict] = mapped_column(JSONType, default=dict, nullable=False)
    studies: Mapped[list] = mapped_column(JSONType, default=list, nullable=False)
    sent: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False, index=True)
    clinical_data_id: Mapped[str | None] = mapped_column(
        String(24),
        unique=True,
        nullable=True,
        comment="Optional one-to-one link to a clinical data record",
    )

    excel_file: Mapped["ExcelFile"] = relationship("ExcelFile", back_populates="rows")

"""SQLAlchemy model for shipment acknowledgments."""

import enum
from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from db.models.base_model import BaseModel, TimestampMixin


class AcknowledgmentStatus(str, enum.Enum):
    """Outcome recorded when a site acknowledges a shipment."""

    RECEIVED = "received"
    MISSING = "missing"
    DAMAGED = "damaged"
    PARTIAL = "partial"
    NOT_ACKNOWLEDGED = "Not Acknowledged"


class ShipmentAcknowledgment(BaseModel, TimestampMixin):
    """
    Site acknowledgment of a drug shipment line.

    References (shipment, study, drug group, drug, excel row) are stored as
    24-hex ids; only `shipment` is required.
    """

    __tablename__ = "shipment_acknowledgments"
    __table_args__ = (
        CheckConstraint("acknowledged_quantity >= 0", name="ck_ack_acknowledged_nonneg"),
        CheckConstraint("received_quantity >= 0", name="ck_ack_received_nonneg"),
        CheckConstraint("missing_quantity >= 0", name="ck_ack_missing_nonneg"),
        CheckConstraint("damaged_quantity >= 0", name="ck_ack_damaged_nonneg"),
    )

    # --- References ---
    shipment_id: Mapped[str] = mapped_column(String(24), nullable=False, index=True)
    study_id: Mapped[str | None] = mapped_column(String(24), nullable=True, index=True)
    drug_group_id: Mapped[str | None] = mapped_column(String(24), nullable=True)
    drug_id: Mapped[str | None] = mapped_column(String(24), nullable=True)
    excel_row_id: Mapped[str | None] = mapped_column(String(24), nullable=True)

    # --- Quantities ---
    acknowledged_quantity: Mapped[int | None] = mapped_column(Integer, nullable=True)
    received_quantity: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    missing_quantity: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    damaged_quantity: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    status: Mapped[str] = mapped_column(
        String(20),
        default=AcknowledgmentStatus.NOT_ACKNOWLEDGED.value,
        nullable=False,
        index=True,
    )
    date_acknowledged: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

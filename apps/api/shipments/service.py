"""Shipment acknowledgment service."""

import logging
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from apps.api.listing import ListParams, fetch_page
from apps.api.shipments.schemas import AcknowledgmentCreate, AcknowledgmentUpdate
from db.models import ShipmentAcknowledgment, utcnow
from db.models.shipment import AcknowledgmentStatus
from db.normalization import normalize_shipment_acknowledgment
from packages.shared.exceptions import NotFoundError, validate_object_id

logger = logging.getLogger(__name__)

SORT_COLUMNS = {
    "createdAt": ShipmentAcknowledgment.created_at,
    "updatedAt": ShipmentAcknowledgment.updated_at,
    "dateAcknowledged": ShipmentAcknowledgment.date_acknowledged,
    "status": ShipmentAcknowledgment.status,
}

# Optional reference columns and the message used when one is malformed.
REFERENCE_FIELDS = {
    "study_id": "Invalid study ID format",
    "drug_group_id": "Invalid drug group ID format",
    "drug_id": "Invalid drug ID format",
    "excel_row_id": "Invalid excel row ID format",
}

NOT_ACKNOWLEDGED = AcknowledgmentStatus.NOT_ACKNOWLEDGED.value


def _clean_references(values: dict[str, Any]) -> dict[str, Any]:
    for field, message in REFERENCE_FIELDS.items():
        if values.get(field) is not None:
            values[field] = validate_object_id(values[field], message)
    return values


def get_acknowledgment(db: Session, ack_id: str) -> ShipmentAcknowledgment:
    ack_id = validate_object_id(ack_id, "Invalid acknowledgment ID format")
    ack = db.get(ShipmentAcknowledgment, ack_id)
    if ack is None:
        raise NotFoundError("Shipment acknowledgment not found")
    return ack


def list_acknowledgments(
    db: Session,
    params: ListParams,
    shipment_id: str | None = None,
    study_id: str | None = None,
    status: AcknowledgmentStatus | None = None,
) -> tuple[list[ShipmentAcknowledgment], int]:
    stmt = select(ShipmentAcknowledgment)
    if shipment_id:
        shipment_id = validate_object_id(shipment_id, "Invalid shipment ID format")
        stmt = stmt.where(ShipmentAcknowledgment.shipment_id == shipment_id)
    if study_id:
        study_id = validate_object_id(study_id, "Invalid study ID format")
        stmt = stmt.where(ShipmentAcknowledgment.study_id == study_id)
    if status is not None:
        stmt = stmt.where(ShipmentAcknowledgment.status == status.value)
    return fetch_page(
        db, stmt, params, sort_columns=SORT_COLUMNS, id_column=ShipmentAcknowledgment.id
    )


def create_acknowledgment(db: Session, data: AcknowledgmentCreate) -> ShipmentAcknowledgment:
    values = _clean_references(data.model_dump())
    values["shipment_id"] = validate_object_id(values["shipment_id"], "Invalid shipment ID format")
    values["status"] = data.status.value
    if values["status"] != NOT_ACKNOWLEDGED and values["date_acknowledged"] is None:
        values["date_acknowledged"] = utcnow()

    ack = ShipmentAcknowledgment(**values)
    normalize_shipment_acknowledgment(ack)
    db.add(ack)
    db.commit()
    db.refresh(ack)
    logger.info("Recorded acknowledgment %s for shipment %s", ack.id, ack.shipment_id)
    return ack


def update_acknowledgment(
    db: Session,
    ack_id: str,
    data: AcknowledgmentUpdate,
) -> ShipmentAcknowledgment:
    """
    Apply supplied fields.

    When the status moves away from "Not Acknowledged" and no explicit
    dateAcknowledged was sent, the acknowledgment date is stamped now.
    """
    ack = get_acknowledgment(db, ack_id)
    changes = _clean_references(data.model_dump(exclude_unset=True))

    new_status = changes.get("status")
    if new_status is not None:
        changes["status"] = new_status.value
        if (
            changes["status"] != ack.status
            and changes["status"] != NOT_ACKNOWLEDGED
            and "date_acknowledged" not in changes
        ):
            changes["date_acknowledged"] = utcnow()

    for field, value in changes.items():
        setattr(ack, field, value)

    normalize_shipment_acknowledgment(ack)
    db.commit()
    db.refresh(ack)
    return ack


def delete_acknowledgment(db: Session, ack_id: str) -> None:
    ack = get_acknowledgment(db, ack_id)
    db.delete(ack)
    db.commit()


def shipment_summary(db: Session, shipment_id: str) -> dict[str, Any]:
    """
    Quantity totals for one shipment.

    A shipment is fully acknowledged when it has at least one record and
    none of them is still "Not Acknowledged".
    """
    shipment_id = validate_object_id(shipment_id, "Invalid shipment ID format")
    row = db.execute(
        select(
            func.count(ShipmentAcknowledgment.id),
            func.coalesce(func.sum(ShipmentAcknowledgment.received_quantity), 0),
            func.coalesce(func.sum(ShipmentAcknowledgment.missing_quantity), 0),
            func.coalesce(func.sum(ShipmentAcknowledgment.damaged_quantity), 0),
        ).where(ShipmentAcknowledgment.shipment_id == shipment_id)
    ).one()
    total, received, missing, damaged = row

    pending = db.execute(
        select(func.count(ShipmentAcknowledgment.id))
        .where(ShipmentAcknowledgment.shipment_id == shipment_id)
        .where(ShipmentAcknowledgment.status == NOT_ACKNOWLEDGED)
    ).scalar_one()

    return {
        "shipment": shipment_id,
        "totalRecords": total,
        "received": int(received),
        "missing": int(missing),
        "damaged": int(damaged),
        "pending": pending,
        "isFullyAcknowledged": total > 0 and pending == 0,
    }

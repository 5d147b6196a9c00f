"""Shipment acknowledgment routes."""

from typing import Any

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from apps.api.audit import log_activity
from apps.api.auth.dependencies import get_current_user, require_admin
from apps.api.auth.models import User
from apps.api.db import get_db
from apps.api.listing import ListParams, pagination_links
from apps.api.shipments import service
from apps.api.shipments.schemas import (
    AcknowledgmentCreate,
    AcknowledgmentUpdate,
    acknowledgment_response,
)
from db.models.shipment import AcknowledgmentStatus

router = APIRouter(prefix="/shipment-acknowledgments", tags=["Shipment Acknowledgments"])


@router.get("")
def list_acknowledgments(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    shipment: str | None = Query(None),
    study: str | None = Query(None),
    ack_status: AcknowledgmentStatus | None = Query(None, alias="status"),
    sort_by: str = Query("createdAt", alias="sortBy"),
    sort_order: str = Query("desc", alias="sortOrder", pattern="^(asc|desc)$"),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> dict[str, Any]:
    params = ListParams(page=page, limit=limit, sort_by=sort_by, sort_order=sort_order)
    acks, total = service.list_acknowledgments(
        db, params, shipment_id=shipment, study_id=study, status=ack_status
    )
    return {
        "success": True,
        "count": len(acks),
        "total": total,
        "pagination": pagination_links(page, limit, total),
        "data": [acknowledgment_response(ack) for ack in acks],
    }


@router.get("/shipment/{shipment_id}/summary")
def get_shipment_summary(
    shipment_id: str,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> dict[str, Any]:
    """Received/missing/damaged totals and acknowledgment state for a shipment."""
    return {"success": True, "data": service.shipment_summary(db, shipment_id)}


@router.get("/{ack_id}")
def get_acknowledgment(
    ack_id: str,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> dict[str, Any]:
    return {"success": True, "data": acknowledgment_response(service.get_acknowledgment(db, ack_id))}


@router.post("", status_code=status.HTTP_201_CREATED)
def create_acknowledgment(
    data: AcknowledgmentCreate,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(require_admin),
) -> dict[str, Any]:
    """Access: admin."""
    ack = service.create_acknowledgment(db, data)
    log_activity(db, user, f"acknowledged_shipment:{ack.shipment_id}:{ack.status}", request)
    return {"success": True, "data": acknowledgment_response(ack)}


@router.put("/{ack_id}")
def update_acknowledgment(
    ack_id: str,
    data: AcknowledgmentUpdate,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(require_admin),
) -> dict[str, Any]:
    """Partial update; omitted fields are unchanged. Access: admin."""
    ack = service.update_acknowledgment(db, ack_id, data)
    log_activity(db, user, f"updated_shipment_acknowledgment:{ack.id}:{ack.status}", request)
    return {"success": True, "data": acknowledgment_response(ack)}


@router.delete("/{ack_id}")
def delete_acknowledgment(
    ack_id: str,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(require_admin),
) -> dict[str, Any]:
    """Access: admin."""
    service.delete_acknowledgment(db, ack_id)
    log_activity(db, user, f"deleted_shipment_acknowledgment:{ack_id}", request)
    return {"success": True, "message": "Shipment acknowledgment deleted successfully"}

"""
Study routes.

All routes require an authenticated user; mutations require the admin role.
"""

from typing import Any

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from apps.api.audit import log_activity
from apps.api.auth.dependencies import get_current_user, require_admin
from apps.api.auth.models import User
from apps.api.db import get_db
from apps.api.listing import ListParams, list_params, pagination_links
from apps.api.studies import service
from apps.api.studies.schemas import StudyCreate, StudyUpdate, study_response

router = APIRouter(prefix="/studies", tags=["Studies"])


@router.get("")
def list_studies(
    params: ListParams = Depends(list_params),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> dict[str, Any]:
    """
    List studies.

    Search matches study_name and protocol_number.
    """
    studies, total = service.list_studies(db, params)
    return {
        "success": True,
        "count": len(studies),
        "total": total,
        "pagination": pagination_links(params.page, params.limit, total),
        "data": [study_response(study) for study in studies],
    }


@router.get("/stats")
def get_study_stats(
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> dict[str, Any]:
    """Study counts, recent activity and design distribution."""
    return {"success": True, "data": service.study_stats(db)}


@router.get("/{study_id}")
def get_study(
    study_id: str,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> dict[str, Any]:
    return {"success": True, "data": study_response(service.get_study(db, study_id))}


@router.post("", status_code=status.HTTP_201_CREATED)
def create_study(
    data: StudyCreate,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(require_admin),
) -> dict[str, Any]:
    """Create a study. Access: admin."""
    study = service.create_study(db, data)
    log_activity(db, user, f"created_study:{study.protocol_number}", request)
    return {"success": True, "data": study_response(study)}


@router.put("/{study_id}")
def update_study(
    study_id: str,
    data: StudyUpdate,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(require_admin),
) -> dict[str, Any]:
    """Partially update a study. Access: admin."""
    study = service.update_study(db, study_id, data)
    log_activity(db, user, f"updated_study:{study.protocol_number}", request)
    return {"success": True, "data": study_response(study)}


@router.patch("/{study_id}/toggle-status")
def toggle_study_status(
    study_id: str,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(require_admin),
) -> dict[str, Any]:
    """Flip isActive. Access: admin."""
    study = service.toggle_study_status(db, study_id)
    verb = "activated" if study.is_active else "deactivated"
    log_activity(db, user, f"{verb}_study:{study.protocol_number}", request)
    return {"success": True, "data": study_response(study)}


@router.delete("/{study_id}")
def delete_study(
    study_id: str,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(require_admin),
) -> dict[str, Any]:
    """Delete a study. Access: admin."""
    protocol_number = service.delete_study(db, study_id)
    log_activity(db, user, f"deleted_study:{protocol_number}", request)
    return {"success": True, "message": "Study deleted successfully"}

"""
Workflow routes: /stages, /form-submissions, /page-migration-logs.
"""

from typing import Any

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from apps.api.audit import log_activity
from apps.api.auth.dependencies import get_current_user, require_admin
from apps.api.auth.models import User
from apps.api.db import get_db
from apps.api.listing import pagination_links
from apps.api.workflow import service
from apps.api.workflow.schemas import (
    FormSubmissionCreate,
    PageMigrationLogCreate,
    StageCreate,
    StageUpdate,
    form_submission_response,
    page_migration_log_response,
    stage_response,
)

stages_router = APIRouter(prefix="/stages", tags=["Stages"])
form_submissions_router = APIRouter(prefix="/form-submissions", tags=["Form Submissions"])
page_migration_logs_router = APIRouter(
    prefix="/page-migration-logs", tags=["Page Migration Logs"]
)


def _page(items: list[dict[str, Any]], page: int, limit: int, total: int) -> dict[str, Any]:
    return {
        "success": True,
        "count": len(items),
        "total": total,
        "pagination": pagination_links(page, limit, total),
        "data": items,
    }


# =============================================================================
# Stages
# =============================================================================


@stages_router.get("")
def list_stages(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> dict[str, Any]:
    """Stages in workflow order."""
    stages, total = service.list_stages(db, page, limit)
    return _page([stage_response(s) for s in stages], page, limit, total)


@stages_router.get("/details/{stage_id}")
def get_stage_details(
    stage_id: str,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> dict[str, Any]:
    return {"success": True, "data": service.stage_details(db, stage_id)}


@stages_router.post("", status_code=status.HTTP_201_CREATED)
def create_stage(
    data: StageCreate,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(require_admin),
) -> dict[str, Any]:
    """Access: admin."""
    stage = service.create_stage(db, data)
    log_activity(db, user, f"created_stage:{stage.name}", request)
    return {
        "success": True,
        "message": "Stage created successfully",
        "data": stage_response(stage),
    }


@stages_router.get("/{slug}")
def get_stage(
    slug: str,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> dict[str, Any]:
    return {"success": True, "data": stage_response(service.get_stage_by_slug(db, slug))}


@stages_router.put("/{slug}")
def update_stage(
    slug: str,
    data: StageUpdate,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(require_admin),
) -> dict[str, Any]:
    """Partial update by slug. Renaming regenerates the slug. Access: admin."""
    stage = service.update_stage(db, slug, data)
    log_activity(db, user, f"updated_stage:{stage.name}", request)
    return {
        "success": True,
        "message": "Stage updated successfully",
        "data": stage_response(stage),
    }


@stages_router.delete("/{slug}")
def delete_stage(
    slug: str,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(require_admin),
) -> dict[str, Any]:
    name = service.delete_stage(db, slug)
    log_activity(db, user, f"deleted_stage:{name}", request)
    return {"success": True, "message": "Stage deleted successfully"}


# =============================================================================
# Form submissions
# =============================================================================


@form_submissions_router.get("")
def list_form_submissions(
    form: str | None = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> dict[str, Any]:
    submissions, total = service.list_form_submissions(db, form, page, limit)
    return _page([form_submission_response(s) for s in submissions], page, limit, total)


@form_submissions_router.get("/{submission_id}")
def get_form_submission(
    submission_id: str,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> dict[str, Any]:
    submission = service.get_form_submission(db, submission_id)
    return {"success": True, "data": form_submission_response(submission)}


@form_submissions_router.post("", status_code=status.HTTP_201_CREATED)
def create_form_submission(
    data: FormSubmissionCreate,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> dict[str, Any]:
    """Submit form data as the calling user."""
    submission = service.create_form_submission(db, data, user)
    log_activity(db, user, f"submitted_form:{submission.form_id}", request)
    return {"success": True, "data": form_submission_response(submission)}


@form_submissions_router.delete("/{submission_id}")
def delete_form_submission(
    submission_id: str,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(require_admin),
) -> dict[str, Any]:
    service.delete_form_submission(db, submission_id)
    log_activity(db, user, f"deleted_form_submission:{submission_id}", request)
    return {"success": True, "message": "Form submission deleted successfully"}


# =============================================================================
# Page migration logs
# =============================================================================


@page_migration_logs_router.get("")
def list_page_migration_logs(
    page_id: str | None = Query(None, alias="page"),
    page: int = Query(1, ge=1, alias="pageNumber"),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> dict[str, Any]:
    """Filter by `page` (the migrated page id); paginate with `pageNumber`."""
    logs, total = service.list_page_migration_logs(db, page_id, page, limit)
    return _page([page_migration_log_response(log) for log in logs], page, limit, total)


@page_migration_logs_router.get("/{log_id}")
def get_page_migration_log(
    log_id: str,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> dict[str, Any]:
    log = service.get_page_migration_log(db, log_id)
    return {"success": True, "data": page_migration_log_response(log)}


@page_migration_logs_router.post("", status_code=status.HTTP_201_CREATED)
def create_page_migration_log(
    data: PageMigrationLogCreate,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(require_admin),
) -> dict[str, Any]:
    """Record a page migration performed by the calling admin."""
    log = service.create_page_migration_log(db, data, user)
    log_activity(db, user, f"migrated_page:{log.page_id}", request)
    return {"success": True, "data": page_migration_log_response(log)}


@page_migration_logs_router.delete("/{log_id}")
def delete_page_migration_log(
    log_id: str,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(require_admin),
) -> dict[str, Any]:
    service.delete_page_migration_log(db, log_id)
    log_activity(db, user, f"deleted_page_migration_log:{log_id}", request)
    return {"success": True, "message": "Page migration log deleted successfully"}

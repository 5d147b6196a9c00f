"""
Workflow service.

Stages are addressed by slug for get/update/delete and by id for the details
view. Form submissions and page migration logs are append-mostly records
stamped with the calling user.
"""

import logging
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from apps.api.auth.models import User
from apps.api.db import commit_or_conflict
from apps.api.workflow.schemas import (
    FormSubmissionCreate,
    PageMigrationLogCreate,
    StageCreate,
    StageUpdate,
)
from db.models import FormSubmission, PageMigrationLog, Stage, utcnow
from db.normalization import (
    normalize_form_submission,
    normalize_page_migration_log,
    normalize_stage,
)
from packages.shared.exceptions import ConflictError, NotFoundError, validate_object_id

logger = logging.getLogger(__name__)

ORDER_NUMBER_TAKEN = "This order number is already in use. Please choose a unique order number."
DUPLICATE_STAGE = "Stage with this name already exists"


# =============================================================================
# Stages
# =============================================================================


def _order_number_taken(db: Session, order_number: int, exclude_id: str | None = None) -> bool:
    stmt = select(Stage.id).where(Stage.order_number == order_number)
    if exclude_id:
        stmt = stmt.where(Stage.id != exclude_id)
    return db.execute(stmt).first() is not None


def _stage_name_taken(db: Session, name: str, exclude_id: str | None = None) -> bool:
    stmt = select(Stage.id).where(Stage.name == name)
    if exclude_id:
        stmt = stmt.where(Stage.id != exclude_id)
    return db.execute(stmt).first() is not None


def get_stage_by_slug(db: Session, slug: str) -> Stage:
    stage = db.execute(select(Stage).where(Stage.slug == slug)).scalar_one_or_none()
    if stage is None:
        raise NotFoundError("Stage not found")
    return stage


def get_stage(db: Session, stage_id: str) -> Stage:
    stage_id = validate_object_id(stage_id, "Invalid stage ID format")
    stage = db.get(Stage, stage_id)
    if stage is None:
        raise NotFoundError("Stage not found")
    return stage


def list_stages(db: Session, page: int, limit: int) -> tuple[list[Stage], int]:
    total = db.execute(select(func.count(Stage.id))).scalar_one()
    stages = db.execute(
        select(Stage).order_by(Stage.order_number).offset((page - 1) * limit).limit(limit)
    ).scalars()
    return list(stages), total


def create_stage(db: Session, data: StageCreate) -> Stage:
    if _stage_name_taken(db, data.name):
        raise ConflictError(DUPLICATE_STAGE)
    if data.order_number is not None and _order_number_taken(db, data.order_number):
        raise ConflictError(ORDER_NUMBER_TAKEN)

    stage = Stage(
        name=data.name,
        description=data.description or None,
        order_number=data.order_number,
    )
    normalize_stage(db, stage)
    db.add(stage)
    commit_or_conflict(db, ORDER_NUMBER_TAKEN)
    db.refresh(stage)
    logger.info("Created stage %s at position %d", stage.name, stage.order_number)
    return stage


def update_stage(db: Session, slug: str, data: StageUpdate) -> Stage:
    stage = get_stage_by_slug(db, slug)
    changes = data.model_dump(exclude_unset=True)

    if "name" in changes and changes["name"] != stage.name:
        if _stage_name_taken(db, changes["name"], exclude_id=stage.id):
            raise ConflictError(DUPLICATE_STAGE)
    order_number = changes.get("order_number")
    if order_number is not None and order_number != stage.order_number:
        if _order_number_taken(db, order_number, exclude_id=stage.id):
            raise ConflictError(ORDER_NUMBER_TAKEN)

    for field, value in changes.items():
        setattr(stage, field, value)

    normalize_stage(db, stage)
    commit_or_conflict(db, ORDER_NUMBER_TAKEN)
    db.refresh(stage)
    return stage


def delete_stage(db: Session, slug: str) -> str:
    stage = get_stage_by_slug(db, slug)
    name = stage.name
    db.delete(stage)
    db.commit()
    return name


def stage_details(db: Session, stage_id: str) -> dict[str, Any]:
    stage = get_stage(db, stage_id)
    return {
        "name": stage.name,
        "description": stage.description,
        "orderNumber": stage.order_number,
    }


# =============================================================================
# Form submissions
# =============================================================================


def get_form_submission(db: Session, submission_id: str) -> FormSubmission:
    submission_id = validate_object_id(submission_id, "Invalid submission ID format")
    submission = db.get(FormSubmission, submission_id)
    if submission is None:
        raise NotFoundError("Form submission not found")
    return submission


def list_form_submissions(
    db: Session,
    form_id: str | None,
    page: int,
    limit: int,
) -> tuple[list[FormSubmission], int]:
    stmt = select(FormSubmission)
    if form_id:
        stmt = stmt.where(
            FormSubmission.form_id == validate_object_id(form_id, "Invalid form ID format")
        )
    total = db.execute(select(func.count()).select_from(stmt.subquery())).scalar_one()
    submissions = db.execute(
        stmt.order_by(FormSubmission.created_at.desc(), FormSubmission.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    ).scalars()
    return list(submissions), total


def create_form_submission(
    db: Session,
    data: FormSubmissionCreate,
    user: User,
) -> FormSubmission:
    submission = FormSubmission(
        form_id=validate_object_id(data.form_id, "Invalid form ID format"),
        title=data.title,
        category=data.category,
        data=data.data,
        submitted_by=user.id,
    )
    normalize_form_submission(submission)
    db.add(submission)
    db.commit()
    db.refresh(submission)
    logger.info("Form %s submitted by %s", submission.form_id, user.id)
    return submission


def delete_form_submission(db: Session, submission_id: str) -> None:
    submission = get_form_submission(db, submission_id)
    db.delete(submission)
    db.commit()


# =============================================================================
# Page migration logs
# =============================================================================


def get_page_migration_log(db: Session, log_id: str) -> PageMigrationLog:
    log_id = validate_object_id(log_id, "Invalid migration log ID format")
    log = db.get(PageMigrationLog, log_id)
    if log is None:
        raise NotFoundError("Page migration log not found")
    return log


def list_page_migration_logs(
    db: Session,
    page_id: str | None,
    page: int,
    limit: int,
) -> tuple[list[PageMigrationLog], int]:
    stmt = select(PageMigrationLog)
    if page_id:
        stmt = stmt.where(
            PageMigrationLog.page_id == validate_object_id(page_id, "Invalid page ID format")
        )
    total = db.execute(select(func.count()).select_from(stmt.subquery())).scalar_one()
    logs = db.execute(
        stmt.order_by(PageMigrationLog.migration_date.desc(), PageMigrationLog.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    ).scalars()
    return list(logs), total


def create_page_migration_log(
    db: Session,
    data: PageMigrationLogCreate,
    user: User,
) -> PageMigrationLog:
    log = PageMigrationLog(
        page_id=validate_object_id(data.page_id, "Invalid page ID format"),
        migrated_by=user.id,
        migration_date=data.migration_date or utcnow(),
        notes=data.notes,
    )
    normalize_page_migration_log(log)
    db.add(log)
    db.commit()
    db.refresh(log)
    return log


def delete_page_migration_log(db: Session, log_id: str) -> None:
    log = get_page_migration_log(db, log_id)
    db.delete(log)
    db.commit()

"""Study service: CRUD, status toggling and statistics."""

import logging
from collections.abc import Iterable
from datetime import timedelta
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from apps.api.db import commit_or_conflict
from apps.api.listing import (
    ListParams,
    apply_filters,
    fetch_page,
    member_distribution,
)
from apps.api.studies.schemas import StudyCreate, StudyUpdate, check_date_order, study_summary
from db.models import Study, utcnow
from db.normalization import clean_id_list, normalize_study
from packages.shared.exceptions import (
    ConflictError,
    InvalidIdError,
    NotFoundError,
    ValidationError,
    is_object_id,
    validate_object_id,
)

logger = logging.getLogger(__name__)

DUPLICATE_PROTOCOL = "Study with this protocol number already exists"

SORT_COLUMNS = {
    "study_name": Study.study_name,
    "protocol_number": Study.protocol_number,
    "study_start_date": Study.study_start_date,
    "date_created": Study.date_created,
    "last_updated": Study.last_updated,
}


# =============================================================================
# Lookups
# =============================================================================


def get_study(db: Session, study_id: str) -> Study:
    """Load a study by id; 400 for a malformed id, 404 if absent."""
    study_id = validate_object_id(study_id, "Invalid study ID format")
    study = db.get(Study, study_id)
    if study is None:
        raise NotFoundError("Study not found")
    return study


def get_studies_by_ids(db: Session, ids: Iterable[str]) -> dict[str, Study]:
    """Resolve ids to studies; unknown ids are simply absent from the result."""
    ids = list(ids)
    if not ids:
        return {}
    rows = db.execute(select(Study).where(Study.id.in_(ids))).scalars()
    return {study.id: study for study in rows}


def populate_studies(db: Session, ids: Iterable[str]) -> list[dict[str, Any]]:
    """Study summaries for ids, newest first. Dangling ids are skipped."""
    studies = sorted(
        get_studies_by_ids(db, ids).values(),
        key=lambda s: (s.date_created, s.id),
        reverse=True,
    )
    return [study_summary(study) for study in studies]


def resolve_study_ids(db: Session, study_ids: Iterable[Any]) -> list[str]:
    """
    Validate and lowercase study ids, checking every one exists.

    Raises:
        InvalidIdError: Any id is not 24-hex (lists invalidIds)
        NotFoundError: Any id has no Study (lists missingStudyIds)
    """
    study_ids = list(study_ids)
    invalid = [sid for sid in study_ids if not is_object_id(sid)]
    if invalid:
        raise InvalidIdError("Invalid study ID format", invalidIds=invalid)

    ids = clean_id_list(study_ids)
    found = get_studies_by_ids(db, ids)
    missing = [sid for sid in ids if sid not in found]
    if missing:
        raise NotFoundError("One or more studies not found", {"missingStudyIds": missing})
    return ids


def _protocol_taken(db: Session, protocol_number: str, exclude_id: str | None = None) -> bool:
    stmt = select(Study.id).where(
        func.lower(Study.protocol_number) == protocol_number.lower()
    )
    if exclude_id:
        stmt = stmt.where(Study.id != exclude_id)
    return db.execute(stmt.limit(1)).first() is not None


# =============================================================================
# CRUD
# =============================================================================


def list_studies(db: Session, params: ListParams) -> tuple[list[Study], int]:
    stmt = apply_filters(
        select(Study),
        params,
        search_columns=[Study.study_name, Study.protocol_number],
        created_column=Study.date_created,
        active_column=Study.is_active,
    )
    return fetch_page(db, stmt, params, sort_columns=SORT_COLUMNS, id_column=Study.id)


def create_study(db: Session, data: StudyCreate) -> Study:
    if _protocol_taken(db, data.protocol_number):
        raise ConflictError(DUPLICATE_PROTOCOL)

    study = Study(
        study_name=data.study_name,
        protocol_number=data.protocol_number,
        study_title=data.study_title,
        study_start_date=data.study_start_date,
        study_end_date=data.study_end_date,
        is_active=data.is_active,
    )
    if data.study_initiation_date is not None:
        study.study_initiation_date = data.study_initiation_date

    normalize_study(study)
    db.add(study)
    commit_or_conflict(db, DUPLICATE_PROTOCOL)
    db.refresh(study)
    logger.info("Created study %s (%s)", study.id, study.protocol_number)
    return study


def update_study(db: Session, study_id: str, data: StudyUpdate) -> Study:
    study = get_study(db, study_id)
    changes = data.model_dump(exclude_unset=True)

    new_protocol = changes.get("protocol_number")
    if (
        new_protocol
        and new_protocol.lower() != study.protocol_number.lower()
        and _protocol_taken(db, new_protocol, exclude_id=study.id)
    ):
        raise ConflictError(DUPLICATE_PROTOCOL)

    try:
        check_date_order(
            changes.get("study_start_date", study.study_start_date),
            changes.get("study_end_date", study.study_end_date),
        )
    except ValueError as exc:
        raise ValidationError(
            "Validation error", errors=[{"field": "study_end_date", "message": str(exc)}]
        ) from exc

    for field, value in changes.items():
        setattr(study, field, value)

    normalize_study(study)
    commit_or_conflict(db, DUPLICATE_PROTOCOL)
    db.refresh(study)
    logger.info("Updated study %s", study.id)
    return study


def delete_study(db: Session, study_id: str) -> str:
    """
    Delete a study and return its protocol number.

    Catalog entries that still list the study keep a dangling reference
    until their sync-relationships routine runs.
    """
    study = get_study(db, study_id)
    protocol_number = study.protocol_number
    db.delete(study)
    db.commit()
    logger.info("Deleted study %s", study_id)
    return protocol_number


def toggle_study_status(db: Session, study_id: str) -> Study:
    study = get_study(db, study_id)
    study.is_active = not study.is_active
    normalize_study(study)
    db.commit()
    db.refresh(study)
    return study


# =============================================================================
# Statistics
# =============================================================================


def study_stats(db: Session) -> dict[str, Any]:
    now = utcnow()
    total = db.execute(select(func.count(Study.id))).scalar_one()
    active = db.execute(
        select(func.count(Study.id)).where(Study.is_active == True)  # noqa: E712
    ).scalar_one()
    recent = db.execute(
        select(func.count(Study.id)).where(Study.date_created >= now - timedelta(days=30))
    ).scalar_one()
    completed = db.execute(
        select(func.count(Study.id)).where(Study.study_end_date < now)
    ).scalar_one()
    latest = db.execute(
        select(Study).order_by(Study.date_created.desc(), Study.id.desc()).limit(5)
    ).scalars()
    design_counts = [
        len(designs or [])
        for designs in db.execute(select(Study.studydesigns)).scalars()
    ]

    return {
        "totalStudies": total,
        "activeStudies": active,
        "inactiveStudies": total - active,
        "recentStudies": recent,
        "completedStudies": completed,
        "latestStudies": [study_summary(study) for study in latest],
        "studyDistribution": member_distribution(design_counts, unit="Designs"),
    }

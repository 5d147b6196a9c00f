"""
Explicit pre-persist normalization.

Services call these functions right before adding or flushing a record.
They derive unique ids and slugs, refresh last-updated timestamps, and keep
derived columns (study_count, stage order numbers) consistent. Nothing here
is wired to ORM events.
"""

import secrets
import uuid
from collections.abc import Iterable
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from db.models import (
    ExcelDataRow,
    ExcelFile,
    FormSubmission,
    PageMigrationLog,
    ShipmentAcknowledgment,
    Stage,
    Study,
    StudyCatalogMixin,
    utcnow,
)
from packages.shared.slugs import slug_with_id


def short_uuid() -> str:
    """Last segment of a random UUID (12 hex chars)."""
    return str(uuid.uuid4()).split("-")[-1]


def clean_id_list(value: Any) -> list[str]:
    """
    Coerce a stored reference list into an ordered, de-duplicated list of
    lowercase ids. Anything that is not a list becomes [].
    """
    if not isinstance(value, list):
        return []
    seen: set[str] = set()
    result: list[str] = []
    for item in value:
        if not isinstance(item, str):
            continue
        item = item.lower()
        if item not in seen:
            seen.add(item)
            result.append(item)
    return result


def merge_ids(existing: Iterable[str], extra: Iterable[str]) -> list[str]:
    """Append ids from extra that are not already present."""
    return clean_id_list(list(existing) + list(extra))


# =============================================================================
# Studies and catalogs
# =============================================================================


def normalize_study(study: Study) -> Study:
    study.study_name = study.study_name.strip()
    study.protocol_number = study.protocol_number.strip()
    study.study_title = study.study_title.strip()
    if not study.unique_id:
        study.unique_id = str(uuid.uuid4())[:8]
    study.slug = slug_with_id(study.study_name, study.unique_id)
    study.studydesigns = clean_id_list(study.studydesigns)
    study.studytypes = clean_id_list(study.studytypes)
    study.studyphases = clean_id_list(study.studyphases)
    study.last_updated = utcnow()
    return study


def normalize_catalog_entry(entry: StudyCatalogMixin) -> StudyCatalogMixin:
    """Normalize a StudyDesign, StudyType or StudyPhase before persisting."""
    name = getattr(entry, entry.NAME_FIELD).strip()
    setattr(entry, entry.NAME_FIELD, name)
    entry.description = (entry.description or "").strip()
    if not entry.unique_id:
        entry.unique_id = secrets.token_hex(8)
    entry.slug = slug_with_id(name, entry.unique_id)
    entry.studies = clean_id_list(entry.studies)
    entry.study_count = len(entry.studies)
    entry.last_updated = utcnow()
    return entry


# =============================================================================
# Excel intake
# =============================================================================


def normalize_excel_file(excel_file: ExcelFile) -> ExcelFile:
    excel_file.excel_name = (excel_file.excel_name or "").strip() or "Unnamed Excel"
    if not excel_file.unique_id:
        excel_file.unique_id = short_uuid()
    excel_file.studies = clean_id_list(excel_file.studies)
    excel_file.last_updated = utcnow()
    return excel_file


def normalize_excel_row(row: ExcelDataRow) -> ExcelDataRow:
    row.studies = clean_id_list(row.studies)
    if row.row_data is None:
        row.row_data = {}
    row.updated_at = utcnow()
    return row


def normalize_shipment_acknowledgment(
    ack: ShipmentAcknowledgment,
) -> ShipmentAcknowledgment:
    ack.updated_at = utcnow()
    return ack


# =============================================================================
# Workflow
# =============================================================================


def next_stage_order_number(db: Session) -> int:
    """Highest existing order number plus one (1 for an empty table)."""
    current = db.execute(select(func.max(Stage.order_number))).scalar()
    return (current or 0) + 1


def normalize_stage(db: Session, stage: Stage) -> Stage:
    stage.name = stage.name.strip()
    if stage.description is not None:
        stage.description = stage.description.strip()
    if not stage.unique_id:
        stage.unique_id = short_uuid()
    stage.slug = slug_with_id(stage.name, stage.unique_id)
    if not stage.order_number:
        stage.order_number = next_stage_order_number(db)
    stage.last_updated = utcnow()
    return stage


def normalize_form_submission(submission: FormSubmission) -> FormSubmission:
    submission.title = (submission.title or "").strip() or "Untitled Form"
    submission.category = (submission.category or "").strip() or "Uncategorized"
    if not submission.unique_id:
        submission.unique_id = short_uuid()
    if not submission.slug:
        submission.slug = slug_with_id(submission.title, submission.unique_id)
    submission.updated_at = utcnow()
    return submission


def normalize_page_migration_log(log: PageMigrationLog) -> PageMigrationLog:
    if not log.unique_id:
        log.unique_id = short_uuid()
    log.slug = f"migration-{log.unique_id}"
    log.last_updated = utcnow()
    return log

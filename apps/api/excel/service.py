"""
Excel intake service.

Files arrive through the upload endpoint as temporary records; metadata is
attached afterwards, and rows are materialised from the first worksheet on
request. Deleting a file removes its rows but leaves the stored bytes alone.
"""

import logging
from datetime import timedelta
from typing import Any

from sqlalchemy import String, cast, delete, func, select, update
from sqlalchemy.orm import Session

from apps.api.db import commit_or_conflict
from apps.api.excel.parsing import ParsedWorkbook
from apps.api.excel.schemas import (
    ExcelFileCreate,
    ExcelFileUpdate,
    ExcelRowUpdate,
)
from apps.api.listing import ListParams, apply_filters, fetch_page
from apps.api.studies.service import get_study, resolve_study_ids
from db.models import ExcelDataRow, ExcelFile, utcnow
from db.normalization import clean_id_list, normalize_excel_file, normalize_excel_row
from packages.shared.exceptions import (
    ConflictError,
    InvalidIdError,
    NotFoundError,
    ValidationError,
    is_object_id,
    validate_object_id,
)
from packages.shared.storage import StoredFile

logger = logging.getLogger(__name__)

CLINICAL_DATA_TAKEN = "Clinical data is already linked to another row"

FILE_SORT_COLUMNS = {
    "excel_name": ExcelFile.excel_name,
    "uploadedAt": ExcelFile.uploaded_at,
    "date_created": ExcelFile.date_created,
    "last_updated": ExcelFile.last_updated,
}


# =============================================================================
# Files
# =============================================================================


def get_file(db: Session, file_id: str | None) -> ExcelFile:
    if not file_id:
        raise ValidationError("File ID is required")
    file_id = validate_object_id(file_id, "Invalid file ID format")
    excel_file = db.get(ExcelFile, file_id)
    if excel_file is None:
        raise NotFoundError("Excel file not found")
    return excel_file


def register_upload(db: Session, stored: StoredFile, temporary: bool = True) -> ExcelFile:
    """Create the ExcelFile record for freshly stored bytes."""
    excel_file = ExcelFile(
        excel_name=stored.original_filename,
        file_name=stored.original_filename,
        file_path=stored.storage_path,
        temporary=temporary,
        file_uploaded=True,
    )
    normalize_excel_file(excel_file)
    db.add(excel_file)
    db.commit()
    db.refresh(excel_file)
    logger.info(
        "Registered upload %s (%s, %d bytes)",
        excel_file.id,
        stored.original_filename,
        stored.file_size_bytes,
    )
    return excel_file


def _chosen_studies(
    db: Session,
    studies: list[str] | None,
    selected: list[str] | None,
) -> list[str] | None:
    """selectedStudies wins over Studies; None means neither was sent."""
    chosen = selected if selected is not None else studies
    if chosen is None:
        return None
    return resolve_study_ids(db, chosen)


def attach_metadata(db: Session, data: ExcelFileCreate) -> ExcelFile:
    excel_file = get_file(db, data.file_id)

    study_ids = _chosen_studies(db, data.studies, data.selected_studies)
    if study_ids is not None:
        excel_file.studies = study_ids
    if data.excel_name is not None:
        excel_file.excel_name = data.excel_name
    if data.selected_columns is not None:
        excel_file.selected_columns = data.selected_columns
    excel_file.is_active = data.is_active

    normalize_excel_file(excel_file)
    db.commit()
    db.refresh(excel_file)
    return excel_file


def list_files(db: Session, params: ListParams) -> tuple[list[ExcelFile], int]:
    stmt = apply_filters(
        select(ExcelFile),
        params,
        search_columns=[ExcelFile.excel_name, ExcelFile.file_name],
        created_column=ExcelFile.date_created,
        active_column=ExcelFile.is_active,
    )
    return fetch_page(
        db, stmt, params, sort_columns=FILE_SORT_COLUMNS, id_column=ExcelFile.id
    )


def update_file(db: Session, file_id: str, data: ExcelFileUpdate) -> ExcelFile:
    excel_file = get_file(db, file_id)
    changes = data.model_dump(exclude_unset=True)

    study_ids = _chosen_studies(
        db, changes.pop("studies", None), changes.pop("selected_studies", None)
    )
    if study_ids is not None:
        excel_file.studies = study_ids

    for field, value in changes.items():
        setattr(excel_file, field, value)

    normalize_excel_file(excel_file)
    db.commit()
    db.refresh(excel_file)
    return excel_file


def delete_file(db: Session, file_id: str) -> str:
    """Delete a file record and its rows. Returns the file's display name."""
    excel_file = get_file(db, file_id)
    name = excel_file.excel_name

    db.execute(delete(ExcelDataRow).where(ExcelDataRow.excel_file_id == excel_file.id))
    db.delete(excel_file)
    db.commit()
    logger.info("Deleted excel file %s and its rows", file_id)
    return name


def toggle_file_status(db: Session, file_id: str) -> ExcelFile:
    excel_file = get_file(db, file_id)
    excel_file.is_active = not excel_file.is_active
    normalize_excel_file(excel_file)
    db.commit()
    db.refresh(excel_file)
    return excel_file


def excel_stats(db: Session) -> dict[str, Any]:
    total = db.execute(select(func.count(ExcelFile.id))).scalar_one()
    active = db.execute(
        select(func.count(ExcelFile.id)).where(ExcelFile.is_active == True)  # noqa: E712
    ).scalar_one()
    recent = db.execute(
        select(func.count(ExcelFile.id)).where(
            ExcelFile.date_created >= utcnow() - timedelta(days=7)
        )
    ).scalar_one()

    distinct_studies: set[str] = set()
    for studies in db.execute(select(ExcelFile.studies)).scalars():
        distinct_studies.update(clean_id_list(studies))

    return {
        "totalExcels": total,
        "activeExcels": active,
        "totalStudies": len(distinct_studies),
        "recentExcels": recent,
    }


# =============================================================================
# Rows
# =============================================================================


def get_row(db: Session, row_id: str) -> ExcelDataRow:
    row_id = validate_object_id(row_id, "Invalid row ID format")
    row = db.get(ExcelDataRow, row_id)
    if row is None:
        raise NotFoundError("Excel row not found")
    return row


def create_rows_from_file(
    db: Session,
    excel_file: ExcelFile,
    parsed: ParsedWorkbook,
    study_ids: list[str],
) -> dict[str, Any]:
    """Insert one ExcelDataRow per non-empty row and mark the file permanent."""
    if not parsed.rows:
        raise ValidationError("No data found in Excel file")
    study_ids = resolve_study_ids(db, study_ids)

    rows = []
    for row_data in parsed.rows:
        row = ExcelDataRow(excel_file_id=excel_file.id, row_data=row_data, studies=study_ids)
        normalize_excel_row(row)
        rows.append(row)
    db.add_all(rows)

    excel_file.temporary = False
    normalize_excel_file(excel_file)
    db.commit()
    for row in rows:
        db.refresh(row)

    logger.info("Created %d rows from excel file %s", len(rows), excel_file.id)
    return {
        "totalRows": len(parsed.rows) + parsed.skipped_rows,
        "createdRows": len(rows),
        "skippedRows": parsed.skipped_rows,
        "rows": rows,
        "errors": [],
    }


def list_rows(
    db: Session,
    file_id: str | None = None,
    sent: bool | None = None,
) -> list[ExcelDataRow]:
    stmt = select(ExcelDataRow)
    if file_id:
        stmt = stmt.where(
            ExcelDataRow.excel_file_id == validate_object_id(file_id, "Invalid file ID format")
        )
    if sent is not None:
        stmt = stmt.where(ExcelDataRow.sent == sent)
    stmt = stmt.order_by(ExcelDataRow.created_at, ExcelDataRow.id)
    return list(db.execute(stmt).scalars())


def update_row(db: Session, row_id: str, data: ExcelRowUpdate) -> ExcelDataRow:
    row = get_row(db, row_id)
    changes = data.model_dump(exclude_unset=True)

    if "studies" in changes:
        changes["studies"] = resolve_study_ids(db, changes["studies"])
    if changes.get("clinical_data_id") is not None:
        changes["clinical_data_id"] = validate_object_id(
            changes["clinical_data_id"], "Invalid clinical data ID format"
        )
        taken = db.execute(
            select(ExcelDataRow.id)
            .where(ExcelDataRow.clinical_data_id == changes["clinical_data_id"])
            .where(ExcelDataRow.id != row.id)
        ).first()
        if taken:
            raise ConflictError(CLINICAL_DATA_TAKEN)

    for field, value in changes.items():
        setattr(row, field, value)

    normalize_excel_row(row)
    commit_or_conflict(db, CLINICAL_DATA_TAKEN)
    db.refresh(row)
    return row


def delete_row(db: Session, row_id: str) -> None:
    row = get_row(db, row_id)
    db.delete(row)
    db.commit()


def mark_row_sent(db: Session, row_id: str) -> ExcelDataRow:
    row = get_row(db, row_id)
    row.sent = True
    normalize_excel_row(row)
    db.commit()
    db.refresh(row)
    return row


def mark_rows_sent(db: Session, row_ids: list[str]) -> int:
    """Mark rows as sent. Returns how many rows actually changed."""
    if not row_ids:
        raise ValidationError("rowIds must be a non-empty array")
    invalid = [rid for rid in row_ids if not is_object_id(rid)]
    if invalid:
        raise InvalidIdError("Invalid row ID format", invalidIds=invalid)

    result = db.execute(
        update(ExcelDataRow)
        .where(ExcelDataRow.id.in_(clean_id_list(row_ids)))
        .where(ExcelDataRow.sent == False)  # noqa: E712
        .values(sent=True, updated_at=utcnow())
    )
    db.commit()
    return result.rowcount


def rows_for_study(db: Session, study_id: str) -> list[ExcelDataRow]:
    """Rows associated with a study, oldest first."""
    study = get_study(db, study_id)
    stmt = (
        select(ExcelDataRow)
        .where(cast(ExcelDataRow.studies, String).contains(study.id))
        .order_by(ExcelDataRow.created_at, ExcelDataRow.id)
    )
    return [row for row in db.execute(stmt).scalars() if study.id in (row.studies or [])]

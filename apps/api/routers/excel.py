"""
Excel intake routes.

Endpoints:
- POST /excel/files/upload: Store a workbook and create a temporary file record
- POST /excel: Attach metadata to an uploaded file
- GET /excel/files, GET/PUT/DELETE /excel/files/{id}: File records
- GET /excel/files/{id}/parse: Preview the first worksheet
- POST /excel/rows/create-from-file: Materialise rows from a file
- /excel/rows/...: Row records and sent tracking
"""

import logging
from typing import Annotated, Any

from fastapi import (
    APIRouter,
    Depends,
    File,
    Form,
    HTTPException,
    Query,
    Request,
    UploadFile,
    status,
)
from sqlalchemy.orm import Session

from apps.api.audit import log_activity
from apps.api.auth.dependencies import get_current_user, require_admin
from apps.api.auth.models import User
from apps.api.config import get_settings
from apps.api.db import get_db
from apps.api.excel import service
from apps.api.excel.parsing import check_upload, parse_workbook
from apps.api.excel.schemas import (
    ExcelFileCreate,
    ExcelFileUpdate,
    ExcelRowUpdate,
    MarkRowsSent,
    RowsFromFile,
    excel_file_response,
    excel_row_response,
)
from apps.api.listing import ListParams, list_params, pagination_links
from apps.api.storage import FileStorageBackend, get_storage
from db.models import ExcelFile
from packages.shared.exceptions import NotFoundError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/excel", tags=["Excel"])


async def _read_stored(storage: FileStorageBackend, excel_file: ExcelFile) -> bytes:
    if not excel_file.file_path:
        raise NotFoundError("Excel file not found on disk")
    try:
        return await storage.read(excel_file.file_path)
    except FileNotFoundError:
        logger.warning("Stored file missing for excel file %s", excel_file.id)
        raise NotFoundError("Excel file not found on disk") from None


# =============================================================================
# Files
# =============================================================================


@router.post("/files/upload", status_code=status.HTTP_201_CREATED)
async def upload_file(
    file: Annotated[UploadFile, File(description="Workbook to upload")],
    request: Request,
    storage: Annotated[FileStorageBackend, Depends(get_storage)],
    db: Annotated[Session, Depends(get_db)],
    user: Annotated[User, Depends(require_admin)],
    temporary: Annotated[bool, Form(description="Keep as a temporary upload")] = True,
) -> dict[str, Any]:
    """
    Store an uploaded workbook.

    Only .xlsx workbooks are accepted. Access: admin.
    """
    content = await file.read()
    check_upload(file.content_type, content)
    max_bytes = get_settings().max_upload_size_mb * 1024 * 1024
    if len(content) > max_bytes:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"File size exceeds maximum {get_settings().max_upload_size_mb}MB",
        )

    stored = await storage.save(content, file.filename or "upload.xlsx", file.content_type)
    excel_file = service.register_upload(db, stored, temporary=temporary)
    log_activity(db, user, f"uploaded_excel:{excel_file.file_name}", request)
    return {
        "success": True,
        "message": "File uploaded successfully",
        "fileId": excel_file.id,
        "data": excel_file_response(excel_file),
    }


@router.post("", status_code=status.HTTP_201_CREATED)
def create_excel(
    data: ExcelFileCreate,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(require_admin),
) -> dict[str, Any]:
    """Attach name, studies and columns to an uploaded file. Access: admin."""
    excel_file = service.attach_metadata(db, data)
    log_activity(db, user, f"created_excel:{excel_file.excel_name}", request)
    return {"success": True, "data": excel_file_response(excel_file)}


@router.get("/files")
def list_files(
    params: ListParams = Depends(list_params),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> dict[str, Any]:
    files, total = service.list_files(db, params)
    return {
        "success": True,
        "count": len(files),
        "total": total,
        "pagination": pagination_links(params.page, params.limit, total),
        "data": [excel_file_response(f) for f in files],
    }


@router.get("/stats")
def get_stats(
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> dict[str, Any]:
    return {"success": True, "data": service.excel_stats(db)}


@router.get("/files/{file_id}")
def get_file(
    file_id: str,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> dict[str, Any]:
    return {"success": True, "data": excel_file_response(service.get_file(db, file_id))}


@router.put("/files/{file_id}")
def update_file(
    file_id: str,
    data: ExcelFileUpdate,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(require_admin),
) -> dict[str, Any]:
    """Partial update; omitted fields are unchanged. Access: admin."""
    excel_file = service.update_file(db, file_id, data)
    log_activity(db, user, f"updated_excel:{excel_file.excel_name}", request)
    return {"success": True, "data": excel_file_response(excel_file)}


@router.delete("/files/{file_id}")
def delete_file(
    file_id: str,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(require_admin),
) -> dict[str, Any]:
    """Remove the record and its rows. The stored file is kept. Access: admin."""
    name = service.delete_file(db, file_id)
    log_activity(db, user, f"deleted_excel:{name}", request)
    return {"success": True, "message": "Excel file deleted successfully"}


@router.patch("/files/{file_id}/toggle-status")
def toggle_file_status(
    file_id: str,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(require_admin),
) -> dict[str, Any]:
    excel_file = service.toggle_file_status(db, file_id)
    verb = "activated" if excel_file.is_active else "deactivated"
    log_activity(db, user, f"{verb}_excel:{excel_file.excel_name}", request)
    return {"success": True, "data": excel_file_response(excel_file)}


@router.get("/files/{file_id}/parse")
async def parse_file(
    file_id: str,
    storage: Annotated[FileStorageBackend, Depends(get_storage)],
    db: Annotated[Session, Depends(get_db)],
    user: Annotated[User, Depends(get_current_user)],
) -> dict[str, Any]:
    """Rows of the first worksheet as objects keyed by header."""
    excel_file = service.get_file(db, file_id)
    parsed = parse_workbook(await _read_stored(storage, excel_file))
    return {
        "success": True,
        "data": {
            "sheetNames": parsed.sheet_names,
            "columns": parsed.columns,
            "rows": parsed.rows,
            "totalRows": len(parsed.rows),
        },
    }


# =============================================================================
# Rows
# =============================================================================


@router.post("/rows/create-from-file", status_code=status.HTTP_201_CREATED)
async def create_rows_from_file(
    data: RowsFromFile,
    request: Request,
    storage: Annotated[FileStorageBackend, Depends(get_storage)],
    db: Annotated[Session, Depends(get_db)],
    user: Annotated[User, Depends(require_admin)],
) -> dict[str, Any]:
    """Insert one row record per non-empty worksheet row. Access: admin."""
    excel_file = service.get_file(db, data.file_id)
    parsed = parse_workbook(await _read_stored(storage, excel_file))
    result = service.create_rows_from_file(db, excel_file, parsed, data.study_ids)
    log_activity(
        db, user, f"created_rows_from_excel:{excel_file.excel_name}:{result['createdRows']}", request
    )
    return {
        "success": True,
        "message": f"{result['createdRows']} rows created successfully",
        "data": {
            "totalRows": result["totalRows"],
            "createdRows": result["createdRows"],
            "skippedRows": result["skippedRows"],
            "errors": result["errors"],
            "rows": [excel_row_response(row) for row in result["rows"]],
        },
    }


@router.get("/rows")
def list_rows(
    file_id: str | None = Query(default=None, alias="fileId"),
    sent: bool | None = Query(default=None),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> dict[str, Any]:
    rows = service.list_rows(db, file_id=file_id, sent=sent)
    return {"success": True, "count": len(rows), "data": [excel_row_response(r) for r in rows]}


@router.patch("/rows/mark-multiple-sent")
def mark_rows_sent(
    data: MarkRowsSent,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(require_admin),
) -> dict[str, Any]:
    modified = service.mark_rows_sent(db, data.row_ids)
    log_activity(db, user, f"marked_rows_sent:{modified}", request)
    return {
        "success": True,
        "message": f"{modified} rows marked as sent",
        "modifiedCount": modified,
    }


@router.get("/rows/{row_id}")
def get_row(
    row_id: str,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> dict[str, Any]:
    return {"success": True, "data": excel_row_response(service.get_row(db, row_id))}


@router.put("/rows/{row_id}")
def update_row(
    row_id: str,
    data: ExcelRowUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(require_admin),
) -> dict[str, Any]:
    return {"success": True, "data": excel_row_response(service.update_row(db, row_id, data))}


@router.delete("/rows/{row_id}")
def delete_row(
    row_id: str,
    db: Session = Depends(get_db),
    user: User = Depends(require_admin),
) -> dict[str, Any]:
    service.delete_row(db, row_id)
    return {"success": True, "message": "Excel row deleted successfully"}


@router.patch("/rows/{row_id}/mark-sent")
def mark_row_sent(
    row_id: str,
    db: Session = Depends(get_db),
    user: User = Depends(require_admin),
) -> dict[str, Any]:
    return {"success": True, "data": excel_row_response(service.mark_row_sent(db, row_id))}


@router.get("/studies/{study_id}/rows")
def rows_for_study(
    study_id: str,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> dict[str, Any]:
    rows = service.rows_for_study(db, study_id)
    return {"success": True, "count": len(rows), "data": [excel_row_response(r) for r in rows]}

"""Pydantic schemas for excel files and rows."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, computed_field

# =============================================================================
# Request Schemas
# =============================================================================


class ExcelFileCreate(BaseModel):
    """
    Attach metadata to an uploaded file.

    `selectedStudies` takes precedence over `Studies` when both are sent.
    """

    model_config = ConfigDict(populate_by_name=True)

    file_id: str | None = Field(default=None, alias="fileId")
    excel_name: str | None = Field(default=None, max_length=255)
    studies: list[str] | None = Field(default=None, alias="Studies")
    selected_studies: list[str] | None = Field(default=None, alias="selectedStudies")
    selected_columns: Any = Field(default=None, alias="selectedColumns")
    is_active: bool = Field(default=True, alias="isActive")


class ExcelFileUpdate(BaseModel):
    """Partial excel file update. Omitted fields are unchanged."""

    model_config = ConfigDict(populate_by_name=True)

    excel_name: str = Field(default=None, max_length=255)
    studies: list[str] = Field(default=None, alias="Studies")
    selected_studies: list[str] = Field(default=None, alias="selectedStudies")
    selected_columns: Any = Field(default=None, alias="selectedColumns")
    is_active: bool = Field(default=None, alias="isActive")
    temporary: bool = None


class RowsFromFile(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    file_id: str | None = Field(default=None, alias="fileId")
    study_ids: list[str] = Field(default_factory=list, alias="studyIds")


class ExcelRowUpdate(BaseModel):
    """Partial row update. Omitted fields are unchanged."""

    model_config = ConfigDict(populate_by_name=True)

    row_data: dict[str, Any] = Field(default=None, alias="rowData")
    studies: list[str] = None
    sent: bool = None
    clinical_data_id: str | None = Field(default=None, alias="clinicalData")


class MarkRowsSent(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    row_ids: list[str] = Field(default_factory=list, alias="rowIds")


# =============================================================================
# Response Schemas
# =============================================================================


class ExcelFileResponse(BaseModel):
    """Excel file record. Studies and selectedStudies mirror one list."""

    model_config = ConfigDict(from_attributes=True)

    id: str = Field(serialization_alias="_id")
    excel_name: str
    file_name: str | None = Field(serialization_alias="fileName")
    file_path: str | None = Field(serialization_alias="filePath")
    uploaded_at: datetime = Field(serialization_alias="uploadedAt")
    selected_columns: Any = Field(serialization_alias="selectedColumns")
    temporary: bool
    is_active: bool = Field(serialization_alias="isActive")
    file_uploaded: bool = Field(serialization_alias="fileUploaded")
    unique_id: str | None = Field(serialization_alias="uniqueId")
    studies: list[str] = Field(serialization_alias="Studies")
    date_created: datetime
    last_updated: datetime

    @computed_field(alias="selectedStudies")
    @property
    def selected_studies(self) -> list[str]:
        return list(self.studies)


class ExcelRowResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str = Field(serialization_alias="_id")
    excel_file_id: str = Field(serialization_alias="excelFile")
    row_data: dict[str, Any] = Field(serialization_alias="rowData")
    studies: list[str]
    sent: bool
    clinical_data_id: str | None = Field(serialization_alias="clinicalData")
    created_at: datetime = Field(serialization_alias="createdAt")
    updated_at: datetime = Field(serialization_alias="updatedAt")


def excel_file_response(excel_file: Any) -> dict[str, Any]:
    return ExcelFileResponse.model_validate(excel_file).model_dump(mode="json", by_alias=True)


def excel_row_response(row: Any) -> dict[str, Any]:
    return ExcelRowResponse.model_validate(row).model_dump(mode="json", by_alias=True)

"""Pydantic schemas for stages, form submissions and page migration logs."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

# =============================================================================
# Stages
# =============================================================================


class StageCreate(BaseModel):
    """Create stage request. orderNumber defaults to the next free slot."""

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    name: str = Field(min_length=1, max_length=100)
    description: str | None = None
    order_number: int | None = Field(default=None, ge=1, alias="orderNumber")


class StageUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    name: str = Field(default=None, min_length=1, max_length=100)
    description: str | None = None
    order_number: int = Field(default=None, ge=1, alias="orderNumber")


class StageResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str = Field(serialization_alias="_id")
    name: str
    description: str | None
    order_number: int = Field(serialization_alias="orderNumber")
    unique_id: str | None = Field(serialization_alias="uniqueId")
    slug: str | None
    absolute_url: str = Field(serialization_alias="absoluteUrl")
    date_created: datetime = Field(serialization_alias="dateCreated")
    last_updated: datetime = Field(serialization_alias="lastUpdated")


# =============================================================================
# Form submissions
# =============================================================================


class FormSubmissionCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    form_id: str = Field(alias="form")
    title: str | None = Field(default=None, max_length=255)
    category: str | None = Field(default=None, max_length=255)
    data: dict[str, Any]


class FormSubmissionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str = Field(serialization_alias="_id")
    form_id: str = Field(serialization_alias="form")
    title: str
    category: str
    data: dict[str, Any]
    submitted_by: str | None = Field(serialization_alias="submittedBy")
    unique_id: str | None = Field(serialization_alias="uniqueId")
    slug: str | None
    created_at: datetime = Field(serialization_alias="createdAt")
    updated_at: datetime = Field(serialization_alias="updatedAt")


# =============================================================================
# Page migration logs
# =============================================================================


class PageMigrationLogCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    page_id: str = Field(alias="page")
    migration_date: datetime | None = Field(default=None, alias="migrationDate")
    notes: str = ""


class PageMigrationLogResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str = Field(serialization_alias="_id")
    page_id: str = Field(serialization_alias="page")
    migrated_by: str | None = Field(serialization_alias="migratedBy")
    migration_date: datetime = Field(serialization_alias="migrationDate")
    notes: str | None
    unique_id: str | None = Field(serialization_alias="uniqueId")
    slug: str | None
    date_created: datetime = Field(serialization_alias="dateCreated")
    last_updated: datetime = Field(serialization_alias="lastUpdated")


def stage_response(stage: Any) -> dict[str, Any]:
    return StageResponse.model_validate(stage).model_dump(mode="json", by_alias=True)


def form_submission_response(submission: Any) -> dict[str, Any]:
    return FormSubmissionResponse.model_validate(submission).model_dump(mode="json", by_alias=True)


def page_migration_log_response(log: Any) -> dict[str, Any]:
    return PageMigrationLogResponse.model_validate(log).model_dump(mode="json", by_alias=True)

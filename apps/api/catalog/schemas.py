"""
Pydantic schemas for the study catalogs (designs, types, phases).

Each catalog differs only in the name of its display-name field, so every
schema is a thin subclass of a shared base.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

# =============================================================================
# Request Schemas
# =============================================================================


class CatalogEntryCreate(BaseModel):
    """Fields shared by every catalog create request."""

    model_config = ConfigDict(populate_by_name=True)

    description: str | None = Field(default=None, max_length=1000)
    is_active: bool = Field(default=True, alias="isActive")
    studies: list[str] | None = None


class CatalogEntryUpdate(BaseModel):
    """Fields shared by every catalog update request. Omitted means unchanged."""

    model_config = ConfigDict(populate_by_name=True)

    description: str = Field(default=None, max_length=1000)
    is_active: bool = Field(default=None, alias="isActive")
    studies: list[str] = None


class StudyDesignCreate(CatalogEntryCreate):
    study_design: str | None = Field(default=None, max_length=255)


class StudyDesignUpdate(CatalogEntryUpdate):
    study_design: str = Field(default=None, min_length=1, max_length=255)


class StudyTypeCreate(CatalogEntryCreate):
    study_type: str | None = Field(default=None, max_length=255)


class StudyTypeUpdate(CatalogEntryUpdate):
    study_type: str = Field(default=None, min_length=1, max_length=255)


class StudyPhaseCreate(CatalogEntryCreate):
    study_phase: str | None = Field(default=None, max_length=255)


class StudyPhaseUpdate(CatalogEntryUpdate):
    study_phase: str = Field(default=None, min_length=1, max_length=255)


class BulkStudyIds(BaseModel):
    """Body for bulk-adding studies to a catalog entry."""

    model_config = ConfigDict(populate_by_name=True)

    study_ids: Any = Field(default=None, alias="studyIds")


# =============================================================================
# Response Schemas
# =============================================================================


class CatalogEntryResponse(BaseModel):
    """Fields shared by every catalog record response."""

    model_config = ConfigDict(from_attributes=True)

    id: str = Field(serialization_alias="_id")
    description: str
    is_active: bool = Field(serialization_alias="isActive")
    unique_id: str | None = Field(serialization_alias="uniqueId")
    slug: str | None
    absolute_url: str = Field(serialization_alias="absoluteUrl")
    study_count: int = Field(serialization_alias="studyCount")
    studies: list[Any]
    date_created: datetime
    last_updated: datetime


class StudyDesignResponse(CatalogEntryResponse):
    study_design: str


class StudyTypeResponse(CatalogEntryResponse):
    study_type: str


class StudyPhaseResponse(CatalogEntryResponse):
    study_phase: str

"""Pydantic schemas for studies."""

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def check_date_order(start: datetime | None, end: datetime | None) -> None:
    if start and end and _as_utc(end) < _as_utc(start):
        raise ValueError("study_end_date must not be before study_start_date")


# =============================================================================
# Request Schemas
# =============================================================================


class StudyCreate(BaseModel):
    """Create study request."""

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    study_name: str = Field(min_length=1, max_length=255)
    protocol_number: str = Field(min_length=1, max_length=100)
    study_title: str = Field(min_length=1, max_length=1000)
    study_start_date: datetime
    study_end_date: datetime | None = None
    study_initiation_date: datetime | None = None
    is_active: bool = Field(default=True, alias="isActive")

    @model_validator(mode="after")
    def check_dates(self) -> "StudyCreate":
        check_date_order(self.study_start_date, self.study_end_date)
        return self


class StudyUpdate(BaseModel):
    """
    Partial study update.

    Omitted fields are left untouched; null is only accepted for
    study_end_date (clears it).
    """

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    study_name: str = Field(default=None, min_length=1, max_length=255)
    protocol_number: str = Field(default=None, min_length=1, max_length=100)
    study_title: str = Field(default=None, min_length=1, max_length=1000)
    study_start_date: datetime = None
    study_end_date: datetime | None = None
    study_initiation_date: datetime = None
    is_active: bool = Field(default=None, alias="isActive")

    @model_validator(mode="after")
    def check_dates(self) -> "StudyUpdate":
        check_date_order(self.study_start_date, self.study_end_date)
        return self


# =============================================================================
# Response Schemas
# =============================================================================


class StudySummary(BaseModel):
    """Study fields shown when a study is populated into another record."""

    model_config = ConfigDict(from_attributes=True)

    id: str = Field(serialization_alias="_id")
    study_name: str
    protocol_number: str
    study_title: str
    date_created: datetime


class StudyResponse(BaseModel):
    """Full study record."""

    model_config = ConfigDict(from_attributes=True)

    id: str = Field(serialization_alias="_id")
    study_name: str
    protocol_number: str
    study_title: str
    study_initiation_date: datetime | None
    study_start_date: datetime
    study_end_date: datetime | None
    is_active: bool = Field(serialization_alias="isActive")
    unique_id: str | None = Field(serialization_alias="uniqueId")
    slug: str | None
    absolute_url: str = Field(serialization_alias="absoluteUrl")
    studydesigns: list[str]
    studytypes: list[str]
    studyphases: list[str]
    date_created: datetime
    last_updated: datetime


def dump(model: BaseModel) -> dict[str, Any]:
    """Serialize a response schema with wire aliases."""
    return model.model_dump(mode="json", by_alias=True)


def study_summary(study: Any) -> dict[str, Any]:
    return dump(StudySummary.model_validate(study))


def study_response(study: Any) -> dict[str, Any]:
    return dump(StudyResponse.model_validate(study))

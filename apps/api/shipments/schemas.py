"""Pydantic schemas for shipment acknowledgments."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from db.models.shipment import AcknowledgmentStatus


class AcknowledgmentCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    shipment_id: str = Field(alias="shipment")
    study_id: str | None = Field(default=None, alias="study")
    drug_group_id: str | None = Field(default=None, alias="drugGroup")
    drug_id: str | None = Field(default=None, alias="drug")
    excel_row_id: str | None = Field(default=None, alias="excelRow")
    acknowledged_quantity: int | None = Field(default=None, ge=0, alias="acknowledgedQuantity")
    received_quantity: int = Field(default=0, ge=0, alias="receivedQuantity")
    missing_quantity: int = Field(default=0, ge=0, alias="missingQuantity")
    damaged_quantity: int = Field(default=0, ge=0, alias="damagedQuantity")
    status: AcknowledgmentStatus = AcknowledgmentStatus.NOT_ACKNOWLEDGED
    date_acknowledged: datetime | None = Field(default=None, alias="dateAcknowledged")
    notes: str | None = None


class AcknowledgmentUpdate(BaseModel):
    """
    Partial acknowledgment update.

    The shipment reference cannot be changed. Quantities and status are
    non-nullable; notes and the optional references accept null.
    """

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    study_id: str | None = Field(default=None, alias="study")
    drug_group_id: str | None = Field(default=None, alias="drugGroup")
    drug_id: str | None = Field(default=None, alias="drug")
    excel_row_id: str | None = Field(default=None, alias="excelRow")
    acknowledged_quantity: int | None = Field(default=None, ge=0, alias="acknowledgedQuantity")
    received_quantity: int = Field(default=None, ge=0, alias="receivedQuantity")
    missing_quantity: int = Field(default=None, ge=0, alias="missingQuantity")
    damaged_quantity: int = Field(default=None, ge=0, alias="damagedQuantity")
    status: AcknowledgmentStatus = None
    date_acknowledged: datetime | None = Field(default=None, alias="dateAcknowledged")
    notes: str | None = None


class AcknowledgmentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str = Field(serialization_alias="_id")
    shipment_id: str = Field(serialization_alias="shipment")
    study_id: str | None = Field(serialization_alias="study")
    drug_group_id: str | None = Field(serialization_alias="drugGroup")
    drug_id: str | None = Field(serialization_alias="drug")
    excel_row_id: str | None = Field(serialization_alias="excelRow")
    acknowledged_quantity: int | None = Field(serialization_alias="acknowledgedQuantity")
    received_quantity: int = Field(serialization_alias="receivedQuantity")
    missing_quantity: int = Field(serialization_alias="missingQuantity")
    damaged_quantity: int = Field(serialization_alias="damagedQuantity")
    status: str
    date_acknowledged: datetime | None = Field(serialization_alias="dateAcknowledged")
    notes: str | None
    created_at: datetime = Field(serialization_alias="createdAt")
    updated_at: datetime = Field(serialization_alias="updatedAt")


def acknowledgment_response(ack: Any) -> dict[str, Any]:
    return AcknowledgmentResponse.model_validate(ack).model_dump(mode="json", by_alias=True)

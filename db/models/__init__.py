"""Database models package."""

from db.models.base_model import (
    BaseModel,
    DatedMixin,
    SluggedMixin,
    TimestampMixin,
    generate_object_id,
    utcnow,
)
from db.models.excel import ExcelDataRow, ExcelFile
from db.models.shipment import AcknowledgmentStatus, ShipmentAcknowledgment
from db.models.study import (
    Study,
    StudyCatalogMixin,
    StudyDesign,
    StudyPhase,
    StudyType,
)
from db.models.workflow import FormSubmission, PageMigrationLog, Stage

__all__ = [
    # Base models and mixins
    "BaseModel",
    "DatedMixin",
    "SluggedMixin",
    "TimestampMixin",
    "generate_object_id",
    "utcnow",
    # Study models
    "Study",
    "StudyCatalogMixin",
    "StudyDesign",
    "StudyPhase",
    "StudyType",
    # Excel intake models
    "ExcelDataRow",
    "ExcelFile",
    # Shipment models
    "AcknowledgmentStatus",
    "ShipmentAcknowledgment",
    # Workflow models
    "FormSubmission",
    "PageMigrationLog",
    "Stage",
]

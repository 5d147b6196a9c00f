"""
SQLAlchemy models for studies and study catalogs.

Core entities:
- Study: A clinical study identified by its protocol number
- StudyDesign / StudyType / StudyPhase: Catalog entries that own an ordered
  list of Study ids

Reference lists are JSON arrays of 24-hex ids, resolved with a second query
at read time. Each Study keeps reverse lists (studydesigns, studytypes,
studyphases) of the catalog entries that reference it.
"""

from datetime import datetime
from typing import ClassVar

from sqlalchemy import Boolean, DateTime, Index, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from db.models.base_model import (
    BaseModel,
    DatedMixin,
    JSONType,
    SluggedMixin,
    utcnow,
)

# =============================================================================
# Study Model
# =============================================================================


class Study(BaseModel, DatedMixin, SluggedMixin):
    """
    Clinical study.

    Uniqueness: protocol_number (unique index, pre-checked case-insensitively).
    """

    __tablename__ = "studies"

    study_name: Mapped[str] = mapped_column(String(255), nullable=False)
    protocol_number: Mapped[str] = mapped_column(
        String(100),
        unique=True,
        nullable=False,
    )
    study_title: Mapped[str] = mapped_column(String(1000), nullable=False)
    study_initiation_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
    )
    study_start_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )
    study_end_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # --- Reverse references ---
    studydesigns: Mapped[list] = mapped_column(JSONType, default=list, nullable=False)
    studytypes: Mapped[list] = mapped_column(JSONType, default=list, nullable=False)
    studyphases: Mapped[list] = mapped_column(JSONType, default=list, nullable=False)

    @property
    def absolute_url(self) -> str:
        return f"/study/{self.slug}"

    def __repr__(self) -> str:
        return f"<Study {self.protocol_number}>"


# =============================================================================
# Catalog Models
# =============================================================================


class StudyCatalogMixin(DatedMixin, SluggedMixin):
    """
    Shared columns for the relationship-owning catalogs.

    Subclasses set NAME_FIELD (the display-name column), REVERSE_FIELD (the
    Study column holding back-references) and URL_PREFIX.
    """

    NAME_FIELD: ClassVar[str]
    REVERSE_FIELD: ClassVar[str]
    URL_PREFIX: ClassVar[str]

    description: Mapped[str] = mapped_column(Text, default="", nullable=False)
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
        index=True,
    )
    studies: Mapped[list] = mapped_column(JSONType, default=list, nullable=False)
    study_count: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
        comment="len(studies), kept by normalization for sorting",
    )

    @property
    def display_name(self) -> str:
        return getattr(self, self.NAME_FIELD)

    @property
    def absolute_url(self) -> str:
        return f"{self.URL_PREFIX}/{self.slug}"


class StudyDesign(BaseModel, StudyCatalogMixin):
    """Study design catalog entry (e.g. parallel, crossover)."""

    __tablename__ = "study_designs"

    NAME_FIELD = "study_design"
    REVERSE_FIELD = "studydesigns"
    URL_PREFIX = "/study-design"

    study_design: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)


class StudyType(BaseModel, StudyCatalogMixin):
    """Study type catalog entry (e.g. interventional, observational)."""

    __tablename__ = "study_types"

    NAME_FIELD = "study_type"
    REVERSE_FIELD = "studytypes"
    URL_PREFIX = "/study-type"

    study_type: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)


class StudyPhase(BaseModel, StudyCatalogMixin):
    """Study phase catalog entry (e.g. Phase I, Phase II)."""

    __tablename__ = "study_phases"

    NAME_FIELD = "study_phase"
    REVERSE_FIELD = "studyphases"
    URL_PREFIX = "/study-phase"

    study_phase: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)


# Case-insensitive name uniqueness at the storage layer
Index("uq_study_designs_name_lower", func.lower(StudyDesign.study_design), unique=True)
Index("uq_study_types_name_lower", func.lower(StudyType.study_type), unique=True)
Index("uq_study_phases_name_lower", func.lower(StudyPhase.study_phase), unique=True)

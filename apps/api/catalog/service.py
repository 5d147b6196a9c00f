"""
Catalog service shared by study designs, study types and study phases.

Every catalog entry owns an ordered list of Study ids. The service keeps the
Study reverse lists (studydesigns / studytypes / studyphases) in step on
membership changes, and offers a repair routine for lists that drift from
the Study table.
"""

import logging
from collections import defaultdict
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import timedelta
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from apps.api.catalog.schemas import (
    CatalogEntryCreate,
    CatalogEntryResponse,
    CatalogEntryUpdate,
    StudyDesignCreate,
    StudyDesignResponse,
    StudyDesignUpdate,
    StudyPhaseCreate,
    StudyPhaseResponse,
    StudyPhaseUpdate,
    StudyTypeCreate,
    StudyTypeResponse,
    StudyTypeUpdate,
)
from apps.api.db import commit_or_conflict
from apps.api.listing import ListParams, apply_filters, fetch_page, member_distribution
from apps.api.studies.schemas import dump
from apps.api.studies.service import (
    get_studies_by_ids,
    populate_studies,
    resolve_study_ids,
)
from db.models import (
    Study,
    StudyCatalogMixin,
    StudyDesign,
    StudyPhase,
    StudyType,
    generate_object_id,
    utcnow,
)
from db.normalization import clean_id_list, merge_ids, normalize_catalog_entry
from packages.shared.exceptions import (
    ConflictError,
    InvalidIdError,
    NotFoundError,
    ValidationError,
    is_object_id,
    validate_object_id,
)

logger = logging.getLogger(__name__)


# =============================================================================
# Catalog Kinds
# =============================================================================


@dataclass(frozen=True)
class CatalogKind:
    """Everything that differs between the three catalogs."""

    model: type[StudyCatalogMixin]
    label: str  # "Study design"
    noun: str  # "design"
    plural: str  # "Designs", used in stats keys
    create_schema: type[CatalogEntryCreate]
    update_schema: type[CatalogEntryUpdate]
    response_schema: type[CatalogEntryResponse]

    @property
    def name_field(self) -> str:
        return self.model.NAME_FIELD

    @property
    def name_column(self):
        return getattr(self.model, self.model.NAME_FIELD)

    @property
    def reverse_field(self) -> str:
        return self.model.REVERSE_FIELD

    @property
    def invalid_id_message(self) -> str:
        return f"Invalid {self.label.lower()} ID format"

    @property
    def not_found_message(self) -> str:
        return f"{self.label} not found"

    @property
    def duplicate_message(self) -> str:
        return f"{self.label} with this name already exists"


DESIGNS = CatalogKind(
    model=StudyDesign,
    label="Study design",
    noun="design",
    plural="Designs",
    create_schema=StudyDesignCreate,
    update_schema=StudyDesignUpdate,
    response_schema=StudyDesignResponse,
)

TYPES = CatalogKind(
    model=StudyType,
    label="Study type",
    noun="type",
    plural="Types",
    create_schema=StudyTypeCreate,
    update_schema=StudyTypeUpdate,
    response_schema=StudyTypeResponse,
)

PHASES = CatalogKind(
    model=StudyPhase,
    label="Study phase",
    noun="phase",
    plural="Phases",
    create_schema=StudyPhaseCreate,
    update_schema=StudyPhaseUpdate,
    response_schema=StudyPhaseResponse,
)


# =============================================================================
# Serialization & Lookups
# =============================================================================


def serialize_entry(
    db: Session,
    kind: CatalogKind,
    entry: StudyCatalogMixin,
    populate: bool = True,
) -> dict[str, Any]:
    """Dump an entry with wire aliases, populating member studies."""
    data = dump(kind.response_schema.model_validate(entry))
    if populate:
        data["studies"] = populate_studies(db, clean_id_list(entry.studies))
    return data


def get_entry(db: Session, kind: CatalogKind, entry_id: str) -> StudyCatalogMixin:
    """Load an entry; 400 for a malformed id, 404 if absent."""
    entry_id = validate_object_id(entry_id, kind.invalid_id_message)
    entry = db.get(kind.model, entry_id)
    if entry is None:
        raise NotFoundError(kind.not_found_message)
    return entry


def _name_taken(
    db: Session,
    kind: CatalogKind,
    name: str,
    exclude_id: str | None = None,
) -> bool:
    stmt = select(kind.model.id).where(func.lower(kind.name_column) == name.lower())
    if exclude_id:
        stmt = stmt.where(kind.model.id != exclude_id)
    return db.execute(stmt.limit(1)).first() is not None


def _require_name(kind: CatalogKind, value: str | None) -> str:
    name = (value or "").strip()
    if not name:
        raise ValidationError(f"{kind.label} name is required")
    return name


def _link_reverse(db: Session, kind: CatalogKind, entry_id: str, study_ids: Iterable[str]) -> None:
    for study in get_studies_by_ids(db, study_ids).values():
        refs = clean_id_list(getattr(study, kind.reverse_field))
        if entry_id not in refs:
            setattr(study, kind.reverse_field, refs + [entry_id])


def _unlink_reverse(db: Session, kind: CatalogKind, entry_id: str, study_ids: Iterable[str]) -> None:
    for study in get_studies_by_ids(db, study_ids).values():
        refs = clean_id_list(getattr(study, kind.reverse_field))
        if entry_id in refs:
            setattr(study, kind.reverse_field, [ref for ref in refs if ref != entry_id])


# =============================================================================
# CRUD
# =============================================================================


def list_entries(
    db: Session,
    kind: CatalogKind,
    params: ListParams,
) -> tuple[list[StudyCatalogMixin], int]:
    model = kind.model
    stmt = apply_filters(
        select(model),
        params,
        search_columns=[kind.name_column, model.description],
        created_column=model.date_created,
        active_column=model.is_active,
    )
    sort_columns = {
        kind.name_field: kind.name_column,
        "date_created": model.date_created,
        "last_updated": model.last_updated,
        "studyCount": model.study_count,
    }
    return fetch_page(db, stmt, params, sort_columns=sort_columns, id_column=model.id)


def create_entry(db: Session, kind: CatalogKind, data: CatalogEntryCreate) -> StudyCatalogMixin:
    name = _require_name(kind, getattr(data, kind.name_field))
    if _name_taken(db, kind, name):
        raise ConflictError(kind.duplicate_message)

    study_ids = resolve_study_ids(db, data.studies or [])
    entry = kind.model(
        id=generate_object_id(),
        description=data.description or "",
        is_active=data.is_active,
        studies=study_ids,
    )
    setattr(entry, kind.name_field, name)
    normalize_catalog_entry(entry)

    _link_reverse(db, kind, entry.id, study_ids)
    db.add(entry)
    commit_or_conflict(db, kind.duplicate_message)
    db.refresh(entry)
    logger.info("Created %s %s (%s)", kind.noun, entry.id, name)
    return entry


def update_entry(
    db: Session,
    kind: CatalogKind,
    entry_id: str,
    data: CatalogEntryUpdate,
) -> StudyCatalogMixin:
    entry = get_entry(db, kind, entry_id)
    changes = data.model_dump(exclude_unset=True)

    if kind.name_field in changes:
        name = _require_name(kind, changes[kind.name_field])
        if name.lower() != entry.display_name.lower() and _name_taken(
            db, kind, name, exclude_id=entry.id
        ):
            raise ConflictError(kind.duplicate_message)
        changes[kind.name_field] = name

    if "studies" in changes:
        new_ids = resolve_study_ids(db, changes["studies"])
        old_ids = clean_id_list(entry.studies)
        _unlink_reverse(db, kind, entry.id, [sid for sid in old_ids if sid not in new_ids])
        _link_reverse(db, kind, entry.id, [sid for sid in new_ids if sid not in old_ids])
        changes["studies"] = new_ids

    for field, value in changes.items():
        setattr(entry, field, value)

    normalize_catalog_entry(entry)
    commit_or_conflict(db, kind.duplicate_message)
    db.refresh(entry)
    logger.info("Updated %s %s", kind.noun, entry.id)
    return entry


def delete_entry(db: Session, kind: CatalogKind, entry_id: str) -> str:
    """
    Delete an entry and pull its id from the member studies' reverse lists.

    The two writes are separate commits. A failure in the second is logged
    and leaves stale reverse references until sync_relationships runs.

    Returns:
        The deleted entry's display name
    """
    entry = get_entry(db, kind, entry_id)
    entry_id = entry.id
    name = entry.display_name
    member_ids = clean_id_list(entry.studies)

    db.delete(entry)
    db.commit()
    logger.info("Deleted %s %s (%s)", kind.noun, entry_id, name)

    try:
        _unlink_reverse(db, kind, entry_id, member_ids)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.warning(
            "Failed to pull %s %s from study reverse references",
            kind.noun,
            entry_id,
            exc_info=True,
        )
    return name


def toggle_status(db: Session, kind: CatalogKind, entry_id: str) -> StudyCatalogMixin:
    entry = get_entry(db, kind, entry_id)
    entry.is_active = not entry.is_active
    normalize_catalog_entry(entry)
    db.commit()
    db.refresh(entry)
    return entry


def catalog_stats(db: Session, kind: CatalogKind) -> dict[str, Any]:
    model = kind.model
    counts = list(db.execute(select(model.study_count)).scalars())
    active = db.execute(
        select(func.count(model.id)).where(model.is_active == True)  # noqa: E712
    ).scalar_one()
    recent = db.execute(
        select(func.count(model.id)).where(
            model.date_created >= utcnow() - timedelta(days=30)
        )
    ).scalar_one()

    total = len(counts)
    return {
        f"total{kind.plural}": total,
        f"active{kind.plural}": active,
        f"inactive{kind.plural}": total - active,
        "totalStudies": sum(counts),
        f"recent{kind.plural}": recent,
        f"{kind.noun}Distribution": member_distribution(counts),
    }


# =============================================================================
# Relationship Management
# =============================================================================


def _validate_pair(entry_id: str, study_id: str) -> tuple[str, str]:
    if not is_object_id(entry_id) or not is_object_id(study_id):
        raise InvalidIdError("Invalid ID format")
    return entry_id.lower(), study_id.lower()


def add_study(
    db: Session,
    kind: CatalogKind,
    entry_id: str,
    study_id: str,
) -> tuple[StudyCatalogMixin, Study]:
    entry_id, study_id = _validate_pair(entry_id, study_id)
    entry = get_entry(db, kind, entry_id)
    study = db.get(Study, study_id)
    if study is None:
        raise NotFoundError("Study not found")

    members = clean_id_list(entry.studies)
    if study_id in members:
        raise ValidationError(f"Study is already in this {kind.noun}")

    entry.studies = members + [study_id]
    normalize_catalog_entry(entry)
    _link_reverse(db, kind, entry.id, [study_id])
    db.commit()
    db.refresh(entry)
    return entry, study


def bulk_add_studies(
    db: Session,
    kind: CatalogKind,
    entry_id: str,
    study_ids: Any,
) -> tuple[StudyCatalogMixin, int]:
    """
    Add every study in study_ids that is not already a member.

    Returns:
        (entry, number of newly added studies)
    """
    if not isinstance(study_ids, list) or not study_ids:
        raise ValidationError("studyIds must be a non-empty array")

    entry_id = validate_object_id(entry_id, kind.invalid_id_message)
    invalid = [sid for sid in study_ids if not is_object_id(sid)]
    if invalid:
        raise InvalidIdError("Invalid study ID format", invalidIds=invalid)

    entry = get_entry(db, kind, entry_id)

    requested = clean_id_list(study_ids)
    found = get_studies_by_ids(db, requested)
    missing = [sid for sid in requested if sid not in found]
    if missing:
        raise NotFoundError("Some studies not found", {"missingStudyIds": missing})

    members = clean_id_list(entry.studies)
    new_ids = [sid for sid in requested if sid not in members]
    if not new_ids:
        raise ValidationError(f"All studies are already in this {kind.noun}")

    entry.studies = merge_ids(members, new_ids)
    normalize_catalog_entry(entry)
    _link_reverse(db, kind, entry.id, new_ids)
    db.commit()
    db.refresh(entry)
    logger.info("Added %d studies to %s %s", len(new_ids), kind.noun, entry.id)
    return entry, len(new_ids)


def remove_study(
    db: Session,
    kind: CatalogKind,
    entry_id: str,
    study_id: str,
) -> StudyCatalogMixin:
    entry_id, study_id = _validate_pair(entry_id, study_id)
    entry = get_entry(db, kind, entry_id)

    members = clean_id_list(entry.studies)
    remaining = [sid for sid in members if sid != study_id]
    if len(remaining) == len(members):
        raise NotFoundError(f"Study not found in this {kind.noun}")

    entry.studies = remaining
    normalize_catalog_entry(entry)
    _unlink_reverse(db, kind, entry.id, [study_id])
    db.commit()
    db.refresh(entry)
    return entry


def available_studies(db: Session, kind: CatalogKind) -> list[Study]:
    """Studies not referenced by any entry of this catalog, newest first."""
    assigned: set[str] = set()
    for members in db.execute(select(kind.model.studies)).scalars():
        assigned.update(clean_id_list(members))

    stmt = select(Study).order_by(Study.date_created.desc(), Study.id.desc())
    return [study for study in db.execute(stmt).scalars() if study.id not in assigned]


def _sync_reverse_references(
    db: Session,
    kind: CatalogKind,
    entries: list[StudyCatalogMixin],
    fixes: list[str],
) -> list[dict[str, Any]]:
    """Align Study reverse lists with the (already repaired) member lists."""
    owners: dict[str, list[str]] = defaultdict(list)
    for entry in entries:
        for sid in clean_id_list(entry.studies):
            owners[sid].append(entry.id)

    issues: list[dict[str, Any]] = []
    for study in db.execute(select(Study).order_by(Study.id)).scalars():
        refs = clean_id_list(getattr(study, kind.reverse_field))
        owned = owners.get(study.id, [])
        stale = [ref for ref in refs if ref not in owned]
        absent = [eid for eid in owned if eid not in refs]
        if not stale and not absent:
            continue

        setattr(study, kind.reverse_field, [ref for ref in refs if ref in owned] + absent)
        study.last_updated = utcnow()
        issue: dict[str, Any] = {
            "studyId": study.id,
            "issue": f"Out-of-sync {kind.noun} references on study",
        }
        if stale:
            issue[f"stale{kind.plural[:-1]}Ids"] = stale
            fixes.append(
                f"Removed {len(stale)} stale {kind.noun} references from study: {study.study_name}"
            )
        if absent:
            issue[f"missing{kind.plural[:-1]}Ids"] = absent
            fixes.append(
                f"Added {len(absent)} missing {kind.noun} references to study: {study.study_name}"
            )
        issues.append(issue)
    return issues


def sync_relationships(db: Session, kind: CatalogKind) -> dict[str, Any]:
    """
    Repair member lists against the Study table.

    For each entry: reset a non-list member value to [], and drop ids with no
    matching Study. Then each Study reverse list is rebuilt to mirror the
    member lists. Studies assigned to more than one entry are reported but
    left alone. Running it twice without intervening writes yields no fixes
    on the second pass.
    """
    issues: list[dict[str, Any]] = []
    fixes: list[str] = []

    existing = set(db.execute(select(Study.id)).scalars())
    entries = list(
        db.execute(
            select(kind.model).order_by(kind.model.date_created, kind.model.id)
        ).scalars()
    )

    assignments: dict[str, list[str]] = defaultdict(list)

    for entry in entries:
        name = entry.display_name
        changed = False

        if not isinstance(entry.studies, list):
            entry.studies = []
            changed = True
            fixes.append(f"Initialized studies array for {kind.noun}: {name}")

        members = clean_id_list(entry.studies)
        non_strings = [item for item in entry.studies if not isinstance(item, str)]
        missing = [sid for sid in members if sid not in existing]
        if missing or non_strings:
            dropped = missing + [str(item) for item in non_strings]
            issues.append(
                {
                    kind.noun: name,
                    "issue": "References non-existent studies",
                    "missingStudyIds": dropped,
                }
            )
            fixes.append(
                f"Removed {len(dropped)} invalid study references from {kind.noun}: {name}"
            )
            members = [sid for sid in members if sid in existing]
            changed = True

        if changed or members != entry.studies:
            entry.studies = members
            normalize_catalog_entry(entry)

        for sid in members:
            assignments[sid].append(name)

    issues.extend(_sync_reverse_references(db, kind, entries, fixes))
    db.commit()

    duplicates = [
        {"studyId": sid, f"{kind.noun}s": names}
        for sid, names in assignments.items()
        if len(names) > 1
    ]
    if duplicates:
        issues.append({"type": "duplicate_assignments", "issues": duplicates})

    logger.info(
        "Synced %s relationships: %d issues, %d fixes",
        kind.noun,
        len(issues),
        len(fixes),
    )
    return {
        "issues": issues,
        "fixes": fixes,
        "summary": {
            f"total{kind.plural}": len(entries),
            "issuesFound": len(issues),
            "fixesApplied": len(fixes),
        },
    }

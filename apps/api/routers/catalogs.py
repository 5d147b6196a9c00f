"""
Routes for the study catalogs: /study-designs, /study-types, /study-phases.

The three routers are built by one factory from a CatalogKind. Fixed paths
(stats, available-studies, sync-relationships) are registered before the
/{entry_id} routes so they are not captured as ids.
"""

from typing import Any

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from apps.api.audit import log_activity
from apps.api.auth.dependencies import get_current_user, require_admin
from apps.api.auth.models import User
from apps.api.catalog import service
from apps.api.catalog.schemas import BulkStudyIds
from apps.api.catalog.service import DESIGNS, PHASES, TYPES, CatalogKind
from apps.api.db import get_db
from apps.api.listing import ListParams, list_params, pagination_links
from apps.api.studies.schemas import study_summary


def build_catalog_router(kind: CatalogKind, prefix: str, tag: str) -> APIRouter:
    """Create the full route set for one catalog."""
    router = APIRouter(prefix=prefix, tags=[tag])
    create_schema = kind.create_schema
    update_schema = kind.update_schema
    action = kind.name_field  # e.g. "study_design"

    # =========================================================================
    # Collection routes
    # =========================================================================

    @router.get("")
    def list_entries(
        params: ListParams = Depends(list_params),
        db: Session = Depends(get_db),
        user: User = Depends(get_current_user),
    ) -> dict[str, Any]:
        entries, total = service.list_entries(db, kind, params)
        return {
            "success": True,
            "count": len(entries),
            "total": total,
            "pagination": pagination_links(params.page, params.limit, total),
            "data": [service.serialize_entry(db, kind, entry) for entry in entries],
        }

    @router.get("/stats")
    def get_stats(
        db: Session = Depends(get_db),
        user: User = Depends(get_current_user),
    ) -> dict[str, Any]:
        return {"success": True, "data": service.catalog_stats(db, kind)}

    @router.get("/available-studies")
    def get_available_studies(
        db: Session = Depends(get_db),
        user: User = Depends(get_current_user),
    ) -> dict[str, Any]:
        """Studies not assigned to any entry of this catalog."""
        studies = service.available_studies(db, kind)
        return {
            "success": True,
            "count": len(studies),
            "data": [study_summary(study) for study in studies],
        }

    @router.post("/sync-relationships")
    def sync_relationships(
        request: Request,
        db: Session = Depends(get_db),
        user: User = Depends(require_admin),
    ) -> dict[str, Any]:
        """Repair member lists against existing studies. Access: admin."""
        result = service.sync_relationships(db, kind)
        log_activity(db, user, f"synced_{action}_relationships", request)
        return {
            "success": True,
            "message": f"{kind.label} relationship sync completed",
            **result,
        }

    @router.post("", status_code=status.HTTP_201_CREATED)
    def create_entry(
        data: create_schema,
        request: Request,
        db: Session = Depends(get_db),
        user: User = Depends(require_admin),
    ) -> dict[str, Any]:
        """Access: admin."""
        entry = service.create_entry(db, kind, data)
        log_activity(db, user, f"created_{action}:{entry.display_name}", request)
        return {"success": True, "data": service.serialize_entry(db, kind, entry)}

    # =========================================================================
    # Item routes
    # =========================================================================

    @router.get("/{entry_id}")
    def get_entry(
        entry_id: str,
        db: Session = Depends(get_db),
        user: User = Depends(get_current_user),
    ) -> dict[str, Any]:
        entry = service.get_entry(db, kind, entry_id)
        return {"success": True, "data": service.serialize_entry(db, kind, entry)}

    @router.put("/{entry_id}")
    def update_entry(
        entry_id: str,
        data: update_schema,
        request: Request,
        db: Session = Depends(get_db),
        user: User = Depends(require_admin),
    ) -> dict[str, Any]:
        """Partial update; omitted fields are unchanged. Access: admin."""
        entry = service.update_entry(db, kind, entry_id, data)
        log_activity(db, user, f"updated_{action}:{entry.display_name}", request)
        return {"success": True, "data": service.serialize_entry(db, kind, entry)}

    @router.patch("/{entry_id}/toggle-status")
    def toggle_status(
        entry_id: str,
        request: Request,
        db: Session = Depends(get_db),
        user: User = Depends(require_admin),
    ) -> dict[str, Any]:
        """Access: admin."""
        entry = service.toggle_status(db, kind, entry_id)
        verb = "activated" if entry.is_active else "deactivated"
        log_activity(db, user, f"{verb}_{action}:{entry.display_name}", request)
        return {"success": True, "data": service.serialize_entry(db, kind, entry)}

    @router.delete("/{entry_id}")
    def delete_entry(
        entry_id: str,
        request: Request,
        db: Session = Depends(get_db),
        user: User = Depends(require_admin),
    ) -> dict[str, Any]:
        """Access: admin."""
        name = service.delete_entry(db, kind, entry_id)
        log_activity(db, user, f"deleted_{action}:{name}", request)
        return {"success": True, "message": f"{kind.label} deleted successfully"}

    # =========================================================================
    # Membership routes
    # =========================================================================

    @router.get("/{entry_id}/studies")
    def list_members(
        entry_id: str,
        db: Session = Depends(get_db),
        user: User = Depends(get_current_user),
    ) -> dict[str, Any]:
        entry = service.get_entry(db, kind, entry_id)
        members = service.serialize_entry(db, kind, entry)["studies"]
        return {
            "success": True,
            kind.noun: {
                "_id": entry.id,
                kind.name_field: entry.display_name,
                "description": entry.description,
                "isActive": entry.is_active,
            },
            "count": len(members),
            "data": members,
        }

    @router.post("/{entry_id}/studies/bulk")
    def bulk_add_studies(
        entry_id: str,
        request: Request,
        data: BulkStudyIds | None = None,
        db: Session = Depends(get_db),
        user: User = Depends(require_admin),
    ) -> dict[str, Any]:
        """Add several studies at once, skipping current members. Access: admin."""
        entry, added = service.bulk_add_studies(
            db, kind, entry_id, data.study_ids if data else None
        )
        log_activity(
            db, user, f"bulk_added_studies_to_{kind.noun}:{entry.display_name}:{added}", request
        )
        return {
            "success": True,
            "message": f"{added} studies added to {kind.noun} successfully",
            "data": service.serialize_entry(db, kind, entry),
            "addedCount": added,
        }

    @router.post("/{entry_id}/studies/{study_id}")
    def add_study(
        entry_id: str,
        study_id: str,
        request: Request,
        db: Session = Depends(get_db),
        user: User = Depends(require_admin),
    ) -> dict[str, Any]:
        """Access: admin."""
        entry, study = service.add_study(db, kind, entry_id, study_id)
        log_activity(
            db,
            user,
            f"added_study_to_{kind.noun}:{entry.display_name}:{study.protocol_number}",
            request,
        )
        return {
            "success": True,
            "message": f"Study added to {kind.noun} successfully",
            "data": service.serialize_entry(db, kind, entry),
        }

    @router.delete("/{entry_id}/studies/{study_id}")
    def remove_study(
        entry_id: str,
        study_id: str,
        request: Request,
        db: Session = Depends(get_db),
        user: User = Depends(require_admin),
    ) -> dict[str, Any]:
        """Access: admin."""
        entry = service.remove_study(db, kind, entry_id, study_id)
        log_activity(db, user, f"removed_study_from_{kind.noun}:{entry.display_name}", request)
        return {
            "success": True,
            "message": f"Study removed from {kind.noun} successfully",
            "data": service.serialize_entry(db, kind, entry),
        }

    return router


study_designs_router = build_catalog_router(DESIGNS, "/study-designs", "Study Designs")
study_types_router = build_catalog_router(TYPES, "/study-types", "Study Types")
study_phases_router = build_catalog_router(PHASES, "/study-phases", "Study Phases")

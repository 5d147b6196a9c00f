"""API routers package."""

from apps.api.routers import (
    auth,
    catalogs,
    excel,
    health,
    shipment_acknowledgments,
    studies,
    workflow,
)

__all__ = [
    "auth",
    "catalogs",
    "excel",
    "health",
    "shipment_acknowledgments",
    "studies",
    "workflow",
]

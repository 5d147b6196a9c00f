"""
Storage dependency for the API layer.

Usage:
    @router.post("/files/upload")
    async def upload(storage: FileStorageBackend = Depends(get_storage)):
        stored = await storage.save(content, "sites.xlsx", XLSX_CONTENT_TYPE)
"""

from packages.shared.storage import FileStorageBackend, get_storage_backend

__all__ = ["FileStorageBackend", "get_storage"]


def get_storage() -> FileStorageBackend:
    """FastAPI dependency returning the configured storage backend."""
    return get_storage_backend()

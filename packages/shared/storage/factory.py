"""Factory for creating the configured storage backend."""

from functools import lru_cache

from packages.shared.storage.base import FileStorageBackend
from packages.shared.storage.local import LocalFileStorage


@lru_cache(maxsize=1)
def get_storage_backend(local_path: str | None = None) -> FileStorageBackend:
    """
    Return the storage backend, built once per process.

    Args:
        local_path: Base directory (defaults to settings.local_upload_path)
    """
    # Import settings lazily to avoid circular imports
    from apps.api.config import get_settings

    return LocalFileStorage(base_path=local_path or get_settings().local_upload_path)

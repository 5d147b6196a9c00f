"""
File storage backends for uploaded workbooks.
"""

from packages.shared.storage.base import FileStorageBackend, StoredFile
from packages.shared.storage.factory import get_storage_backend
from packages.shared.storage.local import LocalFileStorage

__all__ = [
    "FileStorageBackend",
    "LocalFileStorage",
    "StoredFile",
    "get_storage_backend",
]

"""Abstract base class for file storage backends."""

import hashlib
from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass
class StoredFile:
    """Information about a stored file."""

    storage_path: str
    original_filename: str
    content_type: str
    sha256_hash: str
    file_size_bytes: int


class FileStorageBackend(ABC):
    """
    Abstract base for file storage backends.

    Paths returned by save() are backend-relative and are what gets persisted
    on records (e.g. ExcelFile.file_path).
    """

    @abstractmethod
    async def save(self, content: bytes, filename: str, content_type: str) -> StoredFile:
        """Persist content and return where it went."""

    @abstractmethod
    async def read(self, path: str) -> bytes:
        """
        Return the bytes stored at path.

        Raises:
            FileNotFoundError: If nothing is stored at path
        """

    @staticmethod
    def compute_hash(content: bytes) -> str:
        """Hex-encoded SHA-256 of content."""
        return hashlib.sha256(content).hexdigest()

"""Local disk file storage backend."""

import uuid
from datetime import UTC, datetime
from pathlib import Path

import aiofiles
import aiofiles.os

from packages.shared.storage.base import FileStorageBackend, StoredFile


class LocalFileStorage(FileStorageBackend):
    """
    Local disk storage backend.

    Files are organized by date: <base>/YYYY/MM/DD/<hex>_<filename>
    """

    def __init__(self, base_path: str = "./uploads"):
        self.base_path = Path(base_path)
        self.base_path.mkdir(parents=True, exist_ok=True)

    def _get_storage_path(self, filename: str) -> tuple[Path, str]:
        """
        Generate a unique storage path for a file.

        Returns:
            Tuple of (full_path, relative_path)
        """
        date_path = datetime.now(UTC).strftime("%Y/%m/%d")

        safe_filename = "".join(c for c in filename if c.isalnum() or c in "._-")
        if not safe_filename:
            safe_filename = "file"
        unique_name = f"{uuid.uuid4().hex[:12]}_{safe_filename}"

        return self.base_path / date_path / unique_name, f"{date_path}/{unique_name}"

    def _resolve(self, path: str) -> Path:
        full_path = (self.base_path / path).resolve()
        if self.base_path.resolve() not in full_path.parents:
            raise FileNotFoundError(f"File not found: {path}")
        return full_path

    async def save(self, content: bytes, filename: str, content_type: str) -> StoredFile:
        full_path, relative_path = self._get_storage_path(filename)
        await aiofiles.os.makedirs(full_path.parent, exist_ok=True)

        async with aiofiles.open(full_path, "wb") as f:
            await f.write(content)

        return StoredFile(
            storage_path=relative_path,
            original_filename=filename,
            content_type=content_type,
            sha256_hash=self.compute_hash(content),
            file_size_bytes=len(content),
        )

    async def read(self, path: str) -> bytes:
        full_path = self._resolve(path)
        if not full_path.exists():
            raise FileNotFoundError(f"File not found: {path}")

        async with aiofiles.open(full_path, "rb") as f:
            return await f.read()


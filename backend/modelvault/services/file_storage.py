"""Local filesystem storage for uploaded model bytes."""
import logging
import os
from pathlib import Path

import aiofiles

logger = logging.getLogger(__name__)


class FileStorageService:
    """Reads and writes content under a single uploads directory.

    Callers pass storage names generated by the upload gate, never raw
    client filenames.
    """

    def __init__(self, base_path: str | Path):
        self.base_path = Path(base_path)
        self.base_path.mkdir(parents=True, exist_ok=True)

    def path_for(self, storage_name: str) -> Path:
        return self.base_path / Path(storage_name).name

    def exists(self, storage_name: str) -> bool:
        return self.path_for(storage_name).is_file()

    async def save(self, file_bytes: bytes, storage_name: str) -> Path:
        file_path = self.path_for(storage_name)
        async with aiofiles.open(file_path, "wb") as f:
            await f.write(file_bytes)
        return file_path

    async def read(self, storage_name: str) -> bytes:
        async with aiofiles.open(self.path_for(storage_name), "rb") as f:
            return await f.read()

    async def delete(self, storage_name: str) -> bool:
        """Remove stored content if present. Returns whether a file was removed."""
        path = self.path_for(storage_name)
        if not path.exists():
            return False
        os.remove(path)
        logger.info("Removed stored content %s", path.name)
        return True

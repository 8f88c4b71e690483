"""
Payload storage on the local filesystem.

Code snippets and uploaded files live under the configured data directory,
keyed by generated filenames. The database only stores the filename.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from fastapi.concurrency import run_in_threadpool

PLACEHOLDER_FILENAME = "dummy_file.txt"
PLACEHOLDER_CONTENT = "This file is not uploaded yet, please wait!"

logger = logging.getLogger(__name__)


class FileAccessError(RuntimeError):
    pass


@dataclass(frozen=True)
class StoredFile:
    path: Path
    size: int


class FileAccessor:
    def __init__(self, data_dir: Path | str):
        self.data_dir = Path(data_dir).resolve()
        self.data_dir.mkdir(parents=True, exist_ok=True)
        placeholder = self.data_dir / PLACEHOLDER_FILENAME
        if not placeholder.exists():
            logger.debug("placeholder_missing path=%s, creating", placeholder)
            placeholder.write_text(PLACEHOLDER_CONTENT, encoding="utf-8")
        logger.debug("file_accessor_ready data_dir=%s", self.data_dir)

    def resolve(self, filename: str) -> Path:
        """
        Map a logical filename to a path inside the data directory.
        """
        name = (filename or "").strip()
        if not name:
            raise FileAccessError("Filename is empty.")
        path = (self.data_dir / name).resolve()
        if path.parent != self.data_dir:
            raise FileAccessError(f"Filename escapes data directory: {filename!r}")
        return path

    async def exists(self, filename: str) -> bool:
        return await run_in_threadpool(self.resolve(filename).is_file)

    async def read_text(self, filename: str) -> str | None:
        path = self.resolve(filename)

        def _read() -> str | None:
            if not path.is_file():
                return None
            return path.read_text(encoding="utf-8", errors="replace")

        return await run_in_threadpool(_read)

    async def open_stream(self, filename: str) -> StoredFile | None:
        """
        Return the on-disk path and size of a payload, or None if it is missing.
        """
        path = self.resolve(filename)

        def _stat() -> StoredFile | None:
            if not path.is_file():
                return None
            return StoredFile(path=path, size=path.stat().st_size)

        return await run_in_threadpool(_stat)

    async def write(self, filename: str, content: bytes) -> None:
        path = self.resolve(filename)
        await run_in_threadpool(path.write_bytes, content)

    async def remove(self, filename: str) -> bool:
        """
        Delete a payload. The placeholder is shared by pending uploads and is kept.
        """
        if filename == PLACEHOLDER_FILENAME:
            return False
        path = self.resolve(filename)

        def _unlink() -> bool:
            if not path.is_file():
                return False
            path.unlink()
            return True

        return await run_in_threadpool(_unlink)

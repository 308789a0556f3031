# Disk staging for uploaded files
import asyncio
import logging
import os
import random
import shutil
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, List, Sequence

from fastapi import UploadFile

from app.core.errors import CleanupError

logger = logging.getLogger(__name__)


class StagedUpload:
    def __init__(self, path: str, filename: str, content_type: str):
        self.path = path
        self.filename = filename
        self.content_type = content_type

    async def read(self) -> bytes:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._read_blocking)

    def _read_blocking(self) -> bytes:
        with open(self.path, "rb") as f:
            return f.read()


class StorageService:
    def __init__(self, upload_dir: str, field_name: str = "images"):
        self.upload_dir = os.path.abspath(upload_dir)
        self.field_name = field_name

    def ensure_upload_dir(self) -> str:
        os.makedirs(self.upload_dir, exist_ok=True)
        return self.upload_dir

    def unique_name(self, original_name: str) -> str:
        suffix = f"{int(time.time() * 1000)}-{random.randint(0, 10**9)}"
        ext = os.path.splitext(original_name or "")[1]
        return f"{self.field_name}-{suffix}{ext}"

    async def stage(self, upload: UploadFile) -> StagedUpload:
        path = os.path.join(self.upload_dir, self.unique_name(upload.filename))
        await upload.seek(0)
        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(None, self._write_blocking, upload, path)
        except Exception:
            # Half-written file
            if os.path.exists(path):
                os.remove(path)
            raise
        logger.debug("[storage] Staged %s at %s", upload.filename, path)
        return StagedUpload(path, upload.filename or os.path.basename(path), upload.content_type or "application/octet-stream")

    def _write_blocking(self, upload: UploadFile, path: str) -> None:
        with open(path, "wb") as out:
            shutil.copyfileobj(upload.file, out)

    async def release(self, staged: StagedUpload) -> None:
        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(None, self._remove_blocking, staged.path)
        except OSError as e:
            raise CleanupError(staged.path, e) from e

    def _remove_blocking(self, path: str) -> None:
        try:
            os.remove(path)
        except FileNotFoundError:
            pass

    @asynccontextmanager
    async def staging(self, uploads: Sequence[UploadFile]) -> AsyncIterator[List[StagedUpload]]:
        """Stage every upload to disk and delete them all on exit, however the block ends."""
        staged: List[StagedUpload] = []
        try:
            for upload in uploads:
                staged.append(await self.stage(upload))
            yield staged
        finally:
            if staged:
                logger.info("[storage] Cleaning up temporary files: %s", ", ".join(s.path for s in staged))
                await asyncio.gather(*(self._release_logged(s) for s in staged))
                logger.info("[storage] Temporary file cleanup complete")

    async def _release_logged(self, staged: StagedUpload) -> None:
        try:
            await self.release(staged)
        except CleanupError as e:
            logger.error("[storage] %s", e)

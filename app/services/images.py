# Turns uploaded images into URLs a multimodal prompt can reference
import asyncio
import base64
import logging
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import AsyncIterator, List, Optional, Sequence

import httpx
from fastapi import UploadFile

from app.core.config import Settings
from app.core.errors import ConfigurationError, ImageUploadError, NoUsableImagesError
from app.services.storage import StorageService

logger = logging.getLogger(__name__)


class BufferedUpload:
    def __init__(self, data: bytes, filename: str, content_type: str):
        self.data = data
        self.filename = filename
        self.content_type = content_type

    async def read(self) -> bytes:
        return self.data


class ImageIngestion(ABC):
    failure_message = "Failed to process uploaded image files."

    @abstractmethod
    def prepare(self, uploads: Sequence[UploadFile]):
        """Async context manager yielding the image URLs for `uploads`."""

    @abstractmethod
    async def convert(self, source) -> str:
        pass

    async def convert_all(self, sources: Sequence) -> List[str]:
        # Failed images are dropped; the rest keep upload order
        results = await asyncio.gather(*(self._convert_isolated(source) for source in sources))
        urls = [url for url, _ in results if url is not None]
        if not urls:
            errors = [error for _, error in results if error is not None]
            raise NoUsableImagesError(self._no_images_message(errors), errors)
        if len(urls) < len(sources):
            logger.warning("[images] %d of %d images could not be used", len(sources) - len(urls), len(sources))
        return urls

    async def _convert_isolated(self, source):
        try:
            return await self.convert(source), None
        except Exception as e:
            logger.error("[images] Error converting %s: %s", source.filename, e)
            return None, e

    def _no_images_message(self, errors: List[Exception]) -> str:
        return self.failure_message


class InlineImageIngestion(ImageIngestion):
    def __init__(self, storage: StorageService):
        self.storage = storage

    @asynccontextmanager
    async def prepare(self, uploads: Sequence[UploadFile]) -> AsyncIterator[List[str]]:
        async with self.storage.staging(uploads) as staged:
            yield await self.convert_all(staged)

    async def convert(self, source) -> str:
        file_bytes = await source.read()
        encoded = base64.b64encode(file_bytes).decode("utf-8")
        return f"data:{source.content_type};base64,{encoded}"


class HostedImageIngestion(ImageIngestion):
    failure_message = "Failed to upload any images to Cloudinary."

    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.cloud_name = settings.cloudinary_cloud_name
        self.upload_preset = settings.cloudinary_upload_preset
        self.timeout = httpx.Timeout(settings.provider_timeout)
        self.transport = transport

    @property
    def upload_url(self) -> str:
        return f"https://api.cloudinary.com/v1_1/{self.cloud_name}/image/upload"

    @asynccontextmanager
    async def prepare(self, uploads: Sequence[UploadFile]) -> AsyncIterator[List[str]]:
        if not self.cloud_name or not self.upload_preset:
            logger.error("[images] Cloudinary credentials missing")
            raise ConfigurationError("Server configuration error: Cloudinary credentials missing.")
        buffers = []
        for upload in uploads:
            await upload.seek(0)
            buffers.append(BufferedUpload(
                await upload.read(),
                upload.filename or "image",
                upload.content_type or "application/octet-stream",
            ))
        try:
            yield await self.convert_all(buffers)
        finally:
            buffers.clear()

    async def convert(self, source) -> str:
        file_bytes = await source.read()
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            response = await client.post(
                self.upload_url,
                data={"upload_preset": self.upload_preset},
                files={"file": (source.filename, file_bytes, source.content_type)},
            )
        try:
            data = response.json()
        except ValueError as e:
            raise ImageUploadError(f"Cloudinary Error: unreadable reply ({response.status_code})") from e
        error = data.get("error") if isinstance(data, dict) else None
        if error:
            message = error.get("message") if isinstance(error, dict) else str(error)
            raise ImageUploadError(f"Cloudinary Error: {message}")
        secure_url = data.get("secure_url") if isinstance(data, dict) else None
        if not secure_url:
            raise ImageUploadError("Cloudinary Error: no secure_url in reply")
        return secure_url

    def _no_images_message(self, errors: List[Exception]) -> str:
        for error in errors:
            if isinstance(error, ImageUploadError):
                return error.message
        return self.failure_message


def build_image_ingestion(settings: Settings, storage: StorageService) -> ImageIngestion:
    if settings.image_strategy == "hosted":
        return HostedImageIngestion(settings)
    if settings.image_strategy != "inline":
        raise ConfigurationError(f"Unknown IMAGE_STRATEGY: {settings.image_strategy}")
    return InlineImageIngestion(storage)

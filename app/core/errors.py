# Error types raised by services and handlers
from typing import List, Optional


class AppError(Exception):
    """Base error. `public_message` is what the client gets back."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    @property
    def public_message(self) -> str:
        return self.message


class BadRequestError(AppError):
    status_code = 400


class ConfigurationError(AppError):
    pass


class ProviderError(AppError):
    # upstream_status is None when no response arrived
    def __init__(self, upstream_status: Optional[int], detail: str, detail_is_public: bool = True):
        if upstream_status is None:
            message = f"AI service is unreachable: {detail}"
        else:
            message = f"AI service error: {upstream_status} - {detail}"
        super().__init__(message)
        self.upstream_status = upstream_status
        self.detail = detail
        self.detail_is_public = detail_is_public

    @property
    def public_message(self) -> str:
        if self.detail_is_public:
            return self.message
        return f"AI service error: {self.upstream_status}"


class MalformedResponseError(AppError):
    pass


class ImageIngestionError(AppError):
    pass


class ImageUploadError(ImageIngestionError):
    pass


class NoUsableImagesError(ImageIngestionError):
    def __init__(self, message: str, errors: Optional[List[Exception]] = None):
        super().__init__(message)
        self.errors = errors or []


class CleanupError(AppError):
    def __init__(self, path: str, cause: Exception):
        super().__init__(f"Failed to delete temp file {path}: {cause}")
        self.path = path
        self.cause = cause

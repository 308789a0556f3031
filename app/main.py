# FastAPI application factory and entry point
import logging
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.endpoints import router
from app.core.config import Settings
from app.core.errors import AppError
from app.core.logging_config import configure_logging
from app.services.images import build_image_ingestion
from app.services.llm import LLMService
from app.services.storage import StorageService

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or Settings.from_env()
    configure_logging(settings.log_level)

    storage_service = StorageService(settings.upload_dir)
    if settings.image_strategy == "inline":
        storage_service.ensure_upload_dir()

    app = FastAPI(title="IELTS Backend API")
    app.state.settings = settings
    app.state.llm_service = LLMService(settings)
    app.state.image_ingestion = build_image_ingestion(settings, storage_service)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["POST", "GET", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
        allow_credentials=True,
    )

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        if exc.status_code >= 500:
            logger.error("[api] Error processing %s: %s", request.url.path, exc)
        else:
            logger.warning("[api] Rejected %s: %s", request.url.path, exc)
        return JSONResponse(status_code=exc.status_code, content={"error": exc.public_message})

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        logger.warning("[api] Invalid request to %s: %s", request.url.path, exc.errors())
        return JSONResponse(status_code=400, content={"error": _describe_validation_error(exc)})

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("[api] Unhandled error processing %s", request.url.path)
        return JSONResponse(status_code=500, content={"error": "Internal server error"})

    app.include_router(router)

    logger.info("[boot] Allowed CORS origins: %s", ", ".join(settings.cors_origins))
    logger.info("[boot] Image strategy: %s", settings.image_strategy)
    if settings.image_strategy == "inline":
        logger.info("[boot] Upload directory configured at: %s", storage_service.upload_dir)
    if not settings.openrouter_api_key:
        logger.warning("[boot] OPENROUTER_API_KEY is not set; AI endpoints will fail")
    return app


def _describe_validation_error(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    location = ".".join(str(part) for part in errors[0].get("loc", ()) if part != "body")
    return f"Invalid request field: {location}" if location else "Invalid request"


def run() -> None:
    settings = Settings.from_env()
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()

# FastAPI dependencies resolving per-app services
import json

from fastapi import Request
from pydantic import ValidationError

from app.core.config import Settings
from app.core.errors import BadRequestError
from app.models.schemas import Submission
from app.services.images import ImageIngestion
from app.services.llm import LLMService


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_llm_service(request: Request) -> LLMService:
    return request.app.state.llm_service


def get_image_ingestion(request: Request) -> ImageIngestion:
    return request.app.state.image_ingestion


async def get_submission(payload: Request) -> Submission:
    body = await payload.body()
    if not body:
        return Submission()
    try:
        data = json.loads(body)
    except ValueError:
        raise BadRequestError("Request body must be valid JSON")
    if not isinstance(data, dict):
        raise BadRequestError("Request body must be a JSON object")
    try:
        return Submission.model_validate(data)
    except ValidationError:
        raise BadRequestError("topic and essay must be strings")

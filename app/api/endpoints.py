# API endpoints for FastAPI app
import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, File, UploadFile
from fastapi.responses import PlainTextResponse

from app.api.dependencies import get_image_ingestion, get_llm_service, get_settings, get_submission
from app.core.config import Settings
from app.core.errors import BadRequestError
from app.models.schemas import (
    CorrectionResponse,
    ErrorResponse,
    ImprovementResponse,
    Submission,
    TranscriptionResponse,
)
from app.services import prompts
from app.services.images import ImageIngestion
from app.services.llm import LLMService, parse_json_reply

logger = logging.getLogger(__name__)

router = APIRouter(responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}})

MISSING_TOPIC_OR_ESSAY = "Missing topic or essay in request body"
MISSING_ESSAY = "Missing essay in request body"


def require(submission: Submission, *fields: str) -> None:
    if submission.missing(*fields):
        raise BadRequestError(MISSING_TOPIC_OR_ESSAY if "topic" in fields else MISSING_ESSAY)


async def score(llm_service: LLMService, model: str, prompt: str) -> Dict[str, Any]:
    raw_response = await llm_service.call_provider(prompts.chat_payload(model, prompt, expect_json=True))
    return parse_json_reply(raw_response)


async def generate(llm_service: LLMService, model: str, prompt: str) -> str:
    return await llm_service.call_provider(prompts.chat_payload(model, prompt))


@router.get("/", response_class=PlainTextResponse)
async def health_check():
    return "IELTS Backend API is running."


@router.post("/api/essaycriteria")
async def essay_criteria(
    submission: Submission = Depends(get_submission),
    settings: Settings = Depends(get_settings),
    llm_service: LLMService = Depends(get_llm_service),
):
    require(submission, "topic", "essay")
    prompt = prompts.essay_criteria_prompt(submission.topic, submission.essay)
    return await score(llm_service, settings.default_model, prompt)


@router.post("/api/grammar", response_model=CorrectionResponse)
async def grammar(
    submission: Submission = Depends(get_submission),
    settings: Settings = Depends(get_settings),
    llm_service: LLMService = Depends(get_llm_service),
):
    require(submission, "essay")
    correction = await generate(llm_service, settings.default_model, prompts.grammar_prompt(submission.essay))
    return {"correction": correction}


@router.post("/api/graphcriteria")
async def graph_criteria(
    submission: Submission = Depends(get_submission),
    settings: Settings = Depends(get_settings),
    llm_service: LLMService = Depends(get_llm_service),
):
    require(submission, "topic", "essay")
    prompt = prompts.graph_criteria_prompt(submission.topic, submission.essay)
    return await score(llm_service, settings.graph_criteria_model, prompt)


@router.post("/api/improvement", response_model=ImprovementResponse)
async def improvement(
    submission: Submission = Depends(get_submission),
    settings: Settings = Depends(get_settings),
    llm_service: LLMService = Depends(get_llm_service),
):
    require(submission, "essay")
    prompt = prompts.essay_improvement_prompt(submission.essay)
    return {"improvement": await generate(llm_service, settings.default_model, prompt)}


@router.post("/api/improvementgraph", response_model=ImprovementResponse)
async def improvement_graph(
    submission: Submission = Depends(get_submission),
    settings: Settings = Depends(get_settings),
    llm_service: LLMService = Depends(get_llm_service),
):
    require(submission, "topic", "essay")
    prompt = prompts.graph_improvement_prompt(submission.topic, submission.essay)
    return {"improvement": await generate(llm_service, settings.default_model, prompt)}


@router.post("/api/improvementletter", response_model=ImprovementResponse)
async def improvement_letter(
    submission: Submission = Depends(get_submission),
    settings: Settings = Depends(get_settings),
    llm_service: LLMService = Depends(get_llm_service),
):
    require(submission, "topic", "essay")
    prompt = prompts.letter_improvement_prompt(submission.topic, submission.essay)
    return {"improvement": await generate(llm_service, settings.default_model, prompt)}


@router.post("/api/lettercriteria")
async def letter_criteria(
    submission: Submission = Depends(get_submission),
    settings: Settings = Depends(get_settings),
    llm_service: LLMService = Depends(get_llm_service),
):
    require(submission, "topic", "essay")
    prompt = prompts.letter_criteria_prompt(submission.topic, submission.essay)
    return await score(llm_service, settings.default_model, prompt)


@router.post("/api/transcriber", response_model=TranscriptionResponse)
async def transcriber(
    images: Optional[List[UploadFile]] = File(None),
    settings: Settings = Depends(get_settings),
    llm_service: LLMService = Depends(get_llm_service),
    image_ingestion: ImageIngestion = Depends(get_image_ingestion),
):
    if not images:
        raise BadRequestError("No image files were uploaded.")
    if len(images) > settings.max_images:
        raise BadRequestError(f"Too many files: at most {settings.max_images} images are accepted.")
    for image in images:
        if image.size is not None and image.size > settings.max_image_bytes:
            raise BadRequestError(
                f"File {image.filename} exceeds the maximum size of {settings.max_image_bytes} bytes."
            )

    # Staged files are removed when this block exits
    async with image_ingestion.prepare(images) as image_urls:
        logger.info("[transcriber] Sending %d image(s) for transcription", len(image_urls))
        transcription = await llm_service.call_provider(prompts.transcription_payload(settings, image_urls))
    return {"transcription": transcription}

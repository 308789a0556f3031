# Pydantic models for API requests and responses
from typing import Optional

from pydantic import BaseModel


class Submission(BaseModel):
    topic: Optional[str] = None
    essay: Optional[str] = None

    def missing(self, *fields: str) -> bool:
        return any(not getattr(self, field) for field in fields)


class CorrectionResponse(BaseModel):
    correction: str


class ImprovementResponse(BaseModel):
    improvement: str


class TranscriptionResponse(BaseModel):
    transcription: str


class ErrorResponse(BaseModel):
    error: str

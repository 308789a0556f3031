# Application settings loaded from the environment
import os
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict

DEFAULT_MODEL = "microsoft/phi-3.5-mini-128k-instruct"
GRAPH_CRITERIA_MODEL = "nousresearch/hermes-3-llama-3.1-405b"


class Settings(BaseModel):
    """Process-wide configuration, read once at startup and never mutated."""

    model_config = ConfigDict(frozen=True)

    host: str = "0.0.0.0"
    port: int = 3000
    cors_origins: List[str] = []
    log_level: str = "INFO"

    openrouter_api_key: Optional[str] = None
    openrouter_base_url: str = "https://openrouter.ai/api/v1"
    site_url: str = "http://localhost:3000"
    site_name: str = "Coolify Backend"
    provider_timeout: Optional[float] = 60.0

    default_model: str = DEFAULT_MODEL
    graph_criteria_model: str = GRAPH_CRITERIA_MODEL
    transcription_model: str = DEFAULT_MODEL
    transcription_max_tokens: int = 1500

    image_strategy: str = "inline"
    upload_dir: str = "uploads"
    max_images: int = 3
    max_image_bytes: int = 10 * 1024 * 1024
    cloudinary_cloud_name: Optional[str] = None
    cloudinary_upload_preset: Optional[str] = None

    @classmethod
    def from_env(cls) -> "Settings":
        load_dotenv()
        timeout = float(os.getenv("PROVIDER_TIMEOUT", "60"))
        return cls(
            host=os.getenv("HOST", "0.0.0.0"),
            port=int(os.getenv("PORT", "3000")),
            cors_origins=_split_origins(os.getenv("CORS_ORIGIN", "")),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            openrouter_api_key=os.getenv("OPENROUTER_API_KEY") or None,
            openrouter_base_url=os.getenv("OPENROUTER_BASE_URL", "https://openrouter.ai/api/v1"),
            site_url=os.getenv("SITE_URL", "http://localhost:3000"),
            site_name=os.getenv("SITE_NAME", "Coolify Backend"),
            provider_timeout=timeout if timeout > 0 else None,
            default_model=os.getenv("DEFAULT_MODEL", DEFAULT_MODEL),
            graph_criteria_model=os.getenv("GRAPH_CRITERIA_MODEL", GRAPH_CRITERIA_MODEL),
            transcription_model=os.getenv("TRANSCRIPTION_MODEL", DEFAULT_MODEL),
            transcription_max_tokens=int(os.getenv("TRANSCRIPTION_MAX_TOKENS", "1500")),
            image_strategy=os.getenv("IMAGE_STRATEGY", "inline").strip().lower(),
            upload_dir=os.getenv("UPLOAD_DIR", "uploads"),
            max_images=int(os.getenv("MAX_IMAGES", "3")),
            max_image_bytes=int(os.getenv("MAX_IMAGE_BYTES", str(10 * 1024 * 1024))),
            cloudinary_cloud_name=os.getenv("CLOUDINARY_CLOUD_NAME") or None,
            cloudinary_upload_preset=os.getenv("CLOUDINARY_UPLOAD_PRESET") or None,
        )


def _split_origins(raw: str) -> List[str]:
    return [origin.strip() for origin in raw.split(",") if origin.strip()]

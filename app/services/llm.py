# OpenRouter chat-completion service
import json
import logging
import re
from typing import Any, Dict, Optional

import httpx

from app.core.config import Settings
from app.core.errors import ConfigurationError, MalformedResponseError, ProviderError

logger = logging.getLogger(__name__)


class LLMService:
    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.api_key = settings.openrouter_api_key
        self.url = settings.openrouter_base_url.rstrip("/") + "/chat/completions"
        self.headers = {
            "Authorization": f"Bearer {self.api_key}",
            "HTTP-Referer": settings.site_url,
            "X-Title": settings.site_name,
            "Content-Type": "application/json",
        }
        self.timeout = httpx.Timeout(settings.provider_timeout)
        self.transport = transport

    async def call_provider(self, payload: Dict[str, Any]) -> str:
        """Send one chat-completion request and return the generated text."""
        if not self.api_key:
            logger.error("[llm] OpenRouter API key is missing")
            raise ConfigurationError("Server configuration error: API Key missing.")

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(self.url, headers=self.headers, json=payload)
        except httpx.HTTPError as e:
            logger.error("[llm] Request to OpenRouter failed: %r", e)
            raise ProviderError(None, type(e).__name__) from e

        if not response.is_success:
            error_text = response.text
            logger.error("[llm] OpenRouter API error: %s %s", response.status_code, error_text)
            message = _extract_error_message(error_text)
            if message:
                raise ProviderError(response.status_code, message)
            raise ProviderError(response.status_code, error_text, detail_is_public=False)

        try:
            data = response.json()
        except ValueError as e:
            logger.error("[llm] OpenRouter returned a non-JSON body: %s", response.text)
            raise MalformedResponseError("Invalid response structure from AI service") from e

        content = _extract_content(data)
        if not content:
            logger.error("[llm] Invalid OpenRouter response structure: %s", json.dumps(data, indent=2))
            raise MalformedResponseError("Invalid response structure from AI service")
        return content


def parse_json_reply(raw_response: str) -> Dict[str, Any]:
    # Models sometimes wrap the object in a Markdown code fence
    cleaned = re.sub(r"\A```(?:json)?[ \t]*\n?|\n?```\Z", "", raw_response.strip()).strip()
    try:
        parsed = json.loads(cleaned)
        if not isinstance(parsed, dict):
            raise ValueError(f"expected a JSON object, got {type(parsed).__name__}")
    except ValueError as e:
        logger.error("[llm] Failed to parse OpenRouter JSON response: %s", e)
        logger.error("[llm] Raw response: %s", raw_response)
        raise MalformedResponseError("Received invalid JSON response from AI service") from e
    return parsed


def _extract_error_message(error_text: str) -> Optional[str]:
    try:
        error_json = json.loads(error_text)
    except ValueError:
        return None
    if not isinstance(error_json, dict):
        return None
    error = error_json.get("error")
    if isinstance(error, dict) and error.get("message"):
        return str(error["message"])
    return None


def _extract_content(data: Any) -> Optional[str]:
    if not isinstance(data, dict):
        return None
    choices = data.get("choices")
    if not isinstance(choices, list) or not choices:
        return None
    message = choices[0].get("message") if isinstance(choices[0], dict) else None
    if not isinstance(message, dict):
        return None
    content = message.get("content")
    if not isinstance(content, str):
        return None
    return content

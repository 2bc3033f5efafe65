"""Gemini caption client: one structured-output generateContent call per media item."""

from __future__ import annotations

import asyncio
import json
import logging
import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Dict, Mapping, Optional, Protocol

from pydantic import ValidationError as SchemaValidationError
from requests import Response, Session
from requests.exceptions import HTTPError, RequestException

from .config import GeminiSettings, get_settings
from .errors import raise_error
from .schemas import CaptionResult

logger = logging.getLogger(__name__)

SYSTEM_INSTRUCTION = """
You are a visionary artistic director and poet. Your task is to analyze images or videos to understand their deeper meaning, mood, underlying concepts, and emotional resonance.
Do not just describe the visual elements literally. Instead, interpret the "soul" of the media.

Based on this analysis, generate two captions:
1. An English caption: Poetic, evocative, or witty, suitable for high-end social media (Instagram/Pinterest).
2. A Chinese caption: Elegant, using appropriate idioms or poetic phrasing (Chengyu or modern poetry style) that matches the English tone.

You must also provide your "reasoning" - a brief explanation of how you connected the visual elements to the abstract concepts.
"""

USER_PROMPT = "Analyze this media and provide the requested captions based on the schema."

RESPONSE_SCHEMA: Dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "reasoning": {
            "type": "STRING",
            "description": "The internal thought process connecting visual elements to abstract concepts.",
        },
        "englishCaption": {
            "type": "STRING",
            "description": "A creative, engaging caption in English.",
        },
        "chineseCaption": {
            "type": "STRING",
            "description": "A creative, engaging caption in Chinese.",
        },
    },
    "required": ["reasoning", "englishCaption", "chineseCaption"],
}


class CaptionClient(Protocol):
    async def generate_captions(self, payload: str, mime_type: str) -> CaptionResult: ...


@dataclass(frozen=True)
class GeminiConfig:
    api_base: str
    model: str
    thinking_budget: int
    timeout: float
    api_key: Optional[str] = None

    def build_url(self) -> str:
        return f"{self.api_base.rstrip('/')}/models/{self.model}:generateContent"

    @classmethod
    def from_settings(cls, settings: GeminiSettings) -> "GeminiConfig":
        return cls(
            api_base=settings.api_base,
            model=settings.model,
            thinking_budget=settings.thinking_budget,
            timeout=settings.request_timeout_sec,
            api_key=settings.api_key,
        )


def build_request_body(payload: str, mime_type: str, thinking_budget: int) -> Dict[str, Any]:
    return {
        "systemInstruction": {"parts": [{"text": SYSTEM_INSTRUCTION}]},
        "contents": [
            {
                "role": "user",
                "parts": [
                    {"inlineData": {"mimeType": mime_type, "data": payload}},
                    {"text": USER_PROMPT},
                ],
            }
        ],
        "generationConfig": {
            "responseMimeType": "application/json",
            "responseSchema": RESPONSE_SCHEMA,
            "thinkingConfig": {"thinkingBudget": thinking_budget},
        },
    }


def extract_text(envelope: Mapping[str, Any]) -> str:
    """Join the answer text of the first candidate, skipping thought summaries.

    A missing candidate, content or parts list yields ``""``; a field of the
    wrong JSON type is reported as a failed request.
    """
    candidates = envelope.get("candidates") or []
    if not isinstance(candidates, list):
        raise_error("ERR_REQUEST_FAILED", detail="envelope field 'candidates' is not a list")
    if not candidates:
        return ""
    candidate = candidates[0]
    if not isinstance(candidate, dict):
        raise_error("ERR_REQUEST_FAILED", detail="envelope candidate is not an object")
    content = candidate.get("content") or {}
    if not isinstance(content, dict):
        raise_error("ERR_REQUEST_FAILED", detail="candidate field 'content' is not an object")
    parts = content.get("parts") or []
    if not isinstance(parts, list):
        raise_error("ERR_REQUEST_FAILED", detail="content field 'parts' is not a list")
    texts = []
    for part in parts:
        if not isinstance(part, dict) or part.get("thought"):
            continue
        text = part.get("text")
        if text is None:
            continue
        if not isinstance(text, str):
            raise_error("ERR_REQUEST_FAILED", detail=f"part text is {type(text).__name__}, expected a string")
        texts.append(text)
    return "".join(texts).strip()


def parse_caption_text(text: str) -> CaptionResult:
    if not text:
        raise_error("ERR_EMPTY_RESPONSE")
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise_error("ERR_MALFORMED_RESPONSE", detail=f"response is not valid JSON: {exc}", cause=exc)
    if not isinstance(data, dict):
        raise_error("ERR_MALFORMED_RESPONSE", detail=f"expected a JSON object, got {type(data).__name__}")
    try:
        return CaptionResult.model_validate(data)
    except SchemaValidationError as exc:
        raise_error("ERR_MALFORMED_RESPONSE", detail=f"response misses required caption fields: {exc}", cause=exc)


def _getenv_nocase(name: str) -> Optional[str]:
    value = os.getenv(name)
    if value:
        return value
    wanted = name.upper()
    for key, candidate in os.environ.items():
        if key.upper() == wanted and candidate:
            return candidate
    return None


class GeminiCaptionClient:
    """Thin wrapper over the Gemini REST API; no retries, no caching."""

    def __init__(self, config: GeminiConfig, session: Optional[Session] = None):
        self._config = config
        self._session = session if session is not None else Session()
        self._session.headers.setdefault("Accept", "application/json")

    @property
    def config(self) -> GeminiConfig:
        return self._config

    def _get_api_key(self) -> str:
        # Read env on every call so a key exported or removed after startup takes effect.
        key = (
            _getenv_nocase("LENS_GEMINI__API_KEY")
            or self._config.api_key
            or _getenv_nocase("GEMINI_API_KEY")
            or _getenv_nocase("API_KEY")
        )
        if not key:
            raise_error("ERR_CREDENTIAL_MISSING")
        return key

    def _post(self, body: Dict[str, Any], api_key: str) -> Dict[str, Any]:
        url = self._config.build_url()
        try:
            response = self._session.post(
                url,
                json=body,
                headers={"x-goog-api-key": api_key, "Content-Type": "application/json"},
                timeout=self._config.timeout,
            )
        except RequestException as exc:
            raise_error("ERR_REQUEST_FAILED", detail=f"request to {self._config.model} failed: {exc}", cause=exc)
        self._ensure_success(response)
        try:
            envelope = response.json()
        except ValueError as exc:
            raise_error("ERR_REQUEST_FAILED", detail="service returned a non-JSON envelope", cause=exc)
        if not isinstance(envelope, dict):
            raise_error("ERR_REQUEST_FAILED", detail="service returned an unexpected envelope")
        return envelope

    def _ensure_success(self, response: Response) -> None:
        try:
            response.raise_for_status()
        except HTTPError as exc:
            snippet = (response.text or "")[:300].replace("\n", " ")
            raise_error(
                "ERR_REQUEST_FAILED",
                detail=f"generateContent failed ({response.status_code}): {snippet}",
                cause=exc,
            )

    def generate_captions_sync(self, payload: str, mime_type: str) -> CaptionResult:
        api_key = self._get_api_key()
        body = build_request_body(payload, mime_type, self._config.thinking_budget)
        logger.info("Requesting captions model=%s mime=%s payload_chars=%d", self._config.model, mime_type, len(payload))
        envelope = self._post(body, api_key)
        result = parse_caption_text(extract_text(envelope))
        logger.info("Captions received model=%s", self._config.model)
        return result

    async def generate_captions(self, payload: str, mime_type: str) -> CaptionResult:
        return await asyncio.to_thread(self.generate_captions_sync, payload, mime_type)


@lru_cache
def get_caption_client() -> GeminiCaptionClient:
    """Return a cached Gemini client configured from settings."""
    return GeminiCaptionClient(GeminiConfig.from_settings(get_settings().gemini))

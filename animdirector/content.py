"""Structured-content (LLM) clients used by the planner, and strict decoding of their replies."""
from __future__ import annotations

import logging
import re
import time
from typing import Protocol, TypeVar

from pydantic import BaseModel, TypeAdapter, ValidationError

from .config import MAX_RETRIES, Config

log = logging.getLogger(__name__)

T = TypeVar("T")

_FENCE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL)


class ContentDecodeError(ValueError):
    """The service reply was not a document of the expected shape."""


class ContentService(Protocol):
    def propose(self, prompt: str) -> str:
        """Return the service's raw text reply (expected to be JSON)."""
        ...


def decode_json(text: str, schema: type[BaseModel] | TypeAdapter) -> object:
    """Validate the whole reply against *schema*.

    A single surrounding markdown code fence is unwrapped; nothing else is
    extracted or repaired. Raises ContentDecodeError on any mismatch.
    """
    body = (text or "").strip()
    fence = _FENCE.match(body)
    if fence:
        body = fence.group(1)
    try:
        if isinstance(schema, TypeAdapter):
            return schema.validate_json(body)
        return schema.model_validate_json(body)
    except ValidationError as e:
        raise ContentDecodeError(f"Reply did not match schema: {e.error_count()} error(s)\n{body[:300]}") from e


class GeminiContentService:
    """Google Gemini with JSON response mode."""

    def __init__(self, api_key: str, model: str):
        from google import genai

        self.client = genai.Client(api_key=api_key)
        self.model = model

    def propose(self, prompt: str) -> str:
        from google.genai import types

        log.info("Requesting structured content from %s", self.model)
        response = self.client.models.generate_content(
            model=self.model,
            contents=prompt,
            config=types.GenerateContentConfig(
                response_mime_type="application/json",
                temperature=0.4,
            ),
        )
        return response.text or ""


class HFContentService:
    """HF Inference chat completion with exponential backoff."""

    _SYSTEM = (
        "You are an animation director's planning assistant. "
        "Always respond with ONLY valid JSON - no markdown, no extra text."
    )

    def __init__(self, token: str, model: str, max_retries: int = MAX_RETRIES):
        from huggingface_hub import InferenceClient

        self.client = InferenceClient(token=token)
        self.model = model
        self.max_retries = max_retries

    def propose(self, prompt: str) -> str:
        messages = [
            {"role": "system", "content": self._SYSTEM},
            {"role": "user", "content": prompt},
        ]
        for attempt in range(self.max_retries):
            try:
                response = self.client.chat_completion(
                    model=self.model,
                    messages=messages,
                    max_tokens=2048,
                    temperature=0.4,
                )
                return response.choices[0].message.content.strip()
            except Exception as e:
                if attempt == self.max_retries - 1:
                    raise RuntimeError(f"Failed to get response after {self.max_retries} attempts: {e}") from e
                log.warning("Chat completion failed (attempt %d): %s", attempt + 1, e)
                time.sleep(2 ** attempt)  # Exponential backoff
        raise RuntimeError("max_retries must be at least 1")


def get_content_service(config: Config) -> ContentService | None:
    """Gemini when a key is configured, else HF, else None (planner falls back)."""
    if config.gemini_api_key:
        return GeminiContentService(config.gemini_api_key, config.content_model)
    if config.hf_token:
        return HFContentService(config.hf_token, config.hf_content_model)
    log.info("No planning service configured; planner will use its fallback structure")
    return None

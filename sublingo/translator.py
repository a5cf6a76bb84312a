"""Handles streamed subtitle translation through a text-generation service."""

import json
import logging
from abc import ABC, abstractmethod
from typing import Iterator, Optional

import httpx

from .exceptions import InvalidCredentialError, ProviderAccessError, TranslationError

logger = logging.getLogger(__name__)

GEMINI_API_BASE = "https://generativelanguage.googleapis.com/v1beta"
DEFAULT_GEMINI_MODEL = "gemini-2.5-flash"

INVALID_KEY_MARKERS = ("API key not valid", "API_KEY_INVALID")
NOT_FOUND_MARKER = "Requested entity was not found"


class TranslationProvider(ABC):
    """Abstract base class for translation services."""

    @abstractmethod
    def stream(self, prompt: str) -> Iterator[str]:
        """
        Submits a prompt and yields the generated text as it arrives.

        Args:
            prompt: The complete instruction text.

        Yields:
            Text fragments in arrival order. Concatenated, they form the
            model's answer.

        Raises:
            InvalidCredentialError: If the API key is rejected as invalid.
            ProviderAccessError: If the model is not found or access is denied.
            TranslationError: For any other failure.
        """
        pass

    def close(self) -> None:
        """Releases resources held by the provider."""
        pass


class GeminiTranslator(TranslationProvider):
    """Streams completions from the Gemini REST API."""

    def __init__(
        self,
        api_key: Optional[str],
        model: str = DEFAULT_GEMINI_MODEL,
        api_base: str = GEMINI_API_BASE,
        timeout: float = 120.0,
        client: Optional[httpx.Client] = None
    ):
        """
        Initializes the GeminiTranslator.

        Args:
            api_key: Google AI API key. Checked when a prompt is submitted.
            model: Gemini model name.
            api_base: Base URL of the Generative Language API.
            timeout: Read timeout in seconds for the streamed response.
            client: Optional pre-configured httpx client. When omitted the
                    translator creates and owns its own client.
        """
        self.api_key = api_key
        self.model = model
        self.api_base = api_base.rstrip('/')
        self.timeout = timeout
        self._owns_client = client is None
        self._client = client or httpx.Client(timeout=httpx.Timeout(timeout, connect=10.0))
        logger.info(f"Initializing GeminiTranslator with model '{self.model}'")

    @property
    def endpoint(self) -> str:
        return f"{self.api_base}/models/{self.model}:streamGenerateContent"

    def stream(self, prompt: str) -> Iterator[str]:
        if not self.api_key:
            raise InvalidCredentialError("No API key configured for the Gemini backend.")

        payload = {"contents": [{"role": "user", "parts": [{"text": prompt}]}]}
        headers = {"x-goog-api-key": self.api_key, "Content-Type": "application/json"}
        logger.debug(f"Submitting prompt to {self.endpoint} ({len(prompt)} chars)")

        try:
            with self._client.stream(
                "POST",
                self.endpoint,
                params={"alt": "sse"},
                headers=headers,
                json=payload
            ) as response:
                if response.status_code >= 400:
                    response.read()
                    raise self._error_for_status(response.status_code, response.text)

                for line in response.iter_lines():
                    fragment = self._parse_sse_line(line)
                    if fragment:
                        yield fragment
        except TranslationError:
            raise
        except httpx.TimeoutException as e:
            logger.error(f"Gemini request timed out after {self.timeout}s", exc_info=True)
            raise TranslationError(f"Gemini request timed out: {e}") from e
        except httpx.HTTPError as e:
            logger.error(f"Gemini transport error: {e}", exc_info=True)
            raise TranslationError(f"Gemini request failed: {e}") from e

    def _parse_sse_line(self, line: str) -> str:
        """Extracts the text of one `data:` event. Other SSE lines yield ''."""
        if not line.startswith("data:"):
            return ''
        data = line[len("data:"):].strip()
        if not data or data == "[DONE]":
            return ''
        try:
            chunk = json.loads(data)
        except json.JSONDecodeError as e:
            logger.error(f"Malformed event from Gemini: {data[:100]}", exc_info=True)
            raise TranslationError(f"Malformed response event from Gemini: {e}") from e

        if "error" in chunk:
            error = chunk["error"] or {}
            raise self._error_for_status(error.get("code", 500), json.dumps(error))

        feedback = chunk.get("promptFeedback") or {}
        if feedback.get("blockReason"):
            raise TranslationError(f"Prompt was blocked by the provider: {feedback['blockReason']}")

        candidates = chunk.get("candidates") or []
        if not candidates:
            return ''
        parts = (candidates[0].get("content") or {}).get("parts") or []
        return ''.join(part.get("text", '') for part in parts)

    @staticmethod
    def _error_for_status(status_code: int, body: str) -> TranslationError:
        logger.error(f"Gemini returned HTTP {status_code}: {body[:500]}")
        if any(marker in body for marker in INVALID_KEY_MARKERS):
            return InvalidCredentialError(f"API key rejected by Gemini (HTTP {status_code}).")
        if status_code in (401, 403, 404) or NOT_FOUND_MARKER in body:
            return ProviderAccessError(f"Model not found or access denied (HTTP {status_code}).")
        return TranslationError(f"Gemini request failed with HTTP {status_code}.")

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

"""Gemini REST API adapter with optional SSE streaming."""

import json
import logging
from typing import Iterator

import requests

from thinkedin.adapters.llm_adapter import LLMAdapter
from thinkedin.core.exceptions import (
    ConfigError,
    LLMTimeoutError,
    LLMUnavailableError,
    ModelNotFoundError,
)

logger = logging.getLogger("thinkedin")


def candidate_text(data: dict) -> str:
    """Concatenate the text parts of the first candidate; "" if there is none."""
    candidates = data.get("candidates") or []
    if not candidates or not isinstance(candidates[0], dict):
        return ""
    parts = (candidates[0].get("content") or {}).get("parts") or []
    return "".join(part.get("text", "") for part in parts if isinstance(part, dict))


class GeminiAdapter(LLMAdapter):
    """LLM adapter using the Gemini generateContent API.

    Endpoint: POST {BASE_URL}/models/{model}:generateContent?key=<api key>
    Streaming: POST .../models/{model}:streamGenerateContent?alt=sse, where
    each event line is "data: <GenerateContentResponse JSON>".
    """

    BASE_URL = "https://generativelanguage.googleapis.com/v1beta"

    def __init__(self, api_key: str, timeout: int = 60):
        self._api_key = api_key
        self._timeout = timeout

    def generate(
        self,
        prompt: str,
        model: str,
        temperature: float = 0.4,
        max_tokens: int = 512,
        stream: bool = False,
    ) -> Iterator[str]:
        if not self._api_key:
            raise ConfigError("Gemini API key not set")

        action = "streamGenerateContent" if stream else "generateContent"
        url = f"{self.BASE_URL}/models/{model}:{action}"
        params = {"key": self._api_key}
        if stream:
            params["alt"] = "sse"
        payload = {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": temperature,
                "maxOutputTokens": max_tokens,
            },
        }

        try:
            response = requests.post(
                url, params=params, json=payload, stream=stream, timeout=self._timeout
            )
        except requests.Timeout:
            raise LLMTimeoutError(f"Gemini request timed out after {self._timeout}s")
        except requests.ConnectionError as e:
            raise LLMUnavailableError(f"Cannot connect to Gemini: {e}")
        except requests.RequestException as e:
            raise LLMUnavailableError(f"Gemini request failed: {e}")

        if response.status_code == 404:
            raise ModelNotFoundError(f"Model not found: {model}")
        if response.status_code != 200:
            try:
                error_msg = response.json().get("error", {}).get("message", response.text)
            except (json.JSONDecodeError, ValueError, AttributeError):
                error_msg = response.text
            raise LLMUnavailableError(f"Gemini API error ({response.status_code}): {error_msg}")

        if stream:
            return self._stream_response(response)
        return self._non_stream_response(response)

    def _stream_response(self, response: requests.Response) -> Iterator[str]:
        """Parse server-sent events. Only "data:" lines carry content."""
        try:
            for line in response.iter_lines(decode_unicode=True):
                if not line or not line.startswith("data:"):
                    continue
                try:
                    data = json.loads(line[len("data:"):].strip())
                except json.JSONDecodeError:
                    logger.warning(f"Failed to parse streaming line: {line}")
                    continue

                text = candidate_text(data)
                if text:
                    yield text
        except requests.exceptions.ChunkedEncodingError as e:
            logger.error(f"Stream interrupted: {e}")
            raise LLMTimeoutError(f"Stream interrupted: {e}")
        except requests.exceptions.ConnectionError as e:
            logger.error(f"Connection lost during streaming: {e}")
            raise LLMUnavailableError(f"Connection lost: {e}")

    def _non_stream_response(self, response: requests.Response) -> Iterator[str]:
        """Parse non-streaming response. Returns full text in one yield."""
        try:
            data = response.json()
        except (json.JSONDecodeError, ValueError) as e:
            logger.error(f"Failed to parse Gemini response: {e}")
            raise LLMUnavailableError(f"Invalid response from Gemini: {e}")
        text = candidate_text(data)
        if text:
            yield text

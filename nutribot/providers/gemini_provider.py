"""Google Gemini text-completion provider.

Calls the Generative Language REST API (generateContent) with requests.
The blocking HTTP call runs in a worker thread via asyncio.to_thread so
the event loop is never blocked.

API Reference: https://ai.google.dev/api/generate-content

DESIGN DECISIONS:
- One prompt in, one text out; no chat history
- Structured error codes (no silent failures)
- Text parts of the first candidate are concatenated as-is
"""

import asyncio
import os
from typing import Any, Dict, Optional

import requests

from nutribot.data_layer.settings import ExtractionSettings
from nutribot.providers.completion_provider import CompletionServiceError, TextCompletionService


class GeminiCompletionService(TextCompletionService):
    """Client for the Gemini generateContent endpoint.

    Usage:
        service = GeminiCompletionService(api_key="your_key")
        # or
        service = GeminiCompletionService.from_env()  # reads GEMINI_API_KEY

        text = await service.complete("Return {} as JSON")
    """

    BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
    DEFAULT_MODEL = "gemini-2.0-flash"

    def __init__(
        self,
        api_key: str,
        model: str = DEFAULT_MODEL,
        temperature: float = 0.7,
        max_output_tokens: int = 2048,
        request_timeout_seconds: float = 30.0
    ):
        """Initialize Gemini service.

        Args:
            api_key: Google AI Studio API key
            model: Model name (e.g. "gemini-2.0-flash")
            temperature: Sampling temperature
            max_output_tokens: Output token cap
            request_timeout_seconds: HTTP timeout for one call

        Raises:
            ValueError: If API key is empty
        """
        if not api_key or not api_key.strip():
            raise ValueError("API key is required. Get one at https://aistudio.google.com/apikey")
        self.api_key = api_key.strip()
        self.model = model
        self.temperature = temperature
        self.max_output_tokens = max_output_tokens
        self.request_timeout_seconds = request_timeout_seconds

    @classmethod
    def from_env(
        cls,
        env_var: str = "GEMINI_API_KEY",
        fallback_env_var: str = "GOOGLE_API_KEY",
        **kwargs
    ) -> "GeminiCompletionService":
        """Create service from environment variable.

        Raises:
            ValueError: If neither environment variable is set
        """
        api_key = os.environ.get(env_var) or os.environ.get(fallback_env_var)
        if not api_key:
            raise ValueError(
                f"Environment variable {env_var} (or {fallback_env_var}) not set. "
                "Get an API key at https://aistudio.google.com/apikey"
            )
        return cls(api_key=api_key, **kwargs)

    @classmethod
    def from_settings(cls, settings: ExtractionSettings) -> "GeminiCompletionService":
        """Create service from environment key and extraction settings."""
        return cls.from_env(
            model=settings.model_name,
            temperature=settings.temperature,
            max_output_tokens=settings.max_output_tokens,
            request_timeout_seconds=settings.request_timeout_seconds,
        )

    async def complete(self, prompt: str) -> str:
        payload = {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": self.temperature,
                "maxOutputTokens": self.max_output_tokens,
            },
        }
        response_json = await asyncio.to_thread(self._make_request, payload)
        return self._extract_text(response_json)

    def _make_request(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """POST to generateContent.

        Returns:
            Parsed JSON response

        Raises:
            CompletionServiceError: If the request fails
        """
        url = f"{self.BASE_URL}/models/{self.model}:generateContent"
        headers = {
            "x-goog-api-key": self.api_key,
            "Content-Type": "application/json",
        }

        try:
            response = requests.post(
                url, json=payload, headers=headers, timeout=self.request_timeout_seconds
            )

            if response.status_code in (401, 403):
                raise CompletionServiceError(
                    "AUTH_ERROR",
                    f"Gemini API rejected the credentials (status {response.status_code})"
                )

            if response.status_code == 429:
                raise CompletionServiceError(
                    "RATE_LIMITED",
                    "Quota exceeded or too many requests. Please wait before trying again."
                )

            if response.status_code != 200:
                raise CompletionServiceError(
                    "API_ERROR",
                    f"Gemini API returned status {response.status_code}"
                )

            return response.json()

        except requests.exceptions.Timeout:
            raise CompletionServiceError("TIMEOUT", "Gemini API request timed out")
        except requests.exceptions.ConnectionError:
            raise CompletionServiceError("CONNECTION_ERROR", "Failed to connect to Gemini API")
        except requests.exceptions.RequestException as e:
            raise CompletionServiceError("API_ERROR", f"Request failed: {str(e)}")
        except ValueError:
            raise CompletionServiceError("API_ERROR", "Gemini API returned a non-JSON body")

    @staticmethod
    def _extract_text(response_json: Dict[str, Any]) -> str:
        """Concatenate text parts of the first candidate.

        Raises:
            CompletionServiceError: If no text was returned (e.g. blocked prompt)
        """
        candidates = response_json.get("candidates") or []
        if not candidates:
            reason: Optional[str] = (response_json.get("promptFeedback") or {}).get("blockReason")
            detail = f" (blocked: {reason})" if reason else ""
            raise CompletionServiceError("EMPTY_RESPONSE", f"Gemini returned no candidates{detail}")

        parts = (candidates[0].get("content") or {}).get("parts") or []
        text = "".join(part.get("text", "") for part in parts if isinstance(part, dict))
        if not text.strip():
            raise CompletionServiceError("EMPTY_RESPONSE", "Gemini returned an empty response")
        return text

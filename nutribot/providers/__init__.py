"""Provider abstraction layer for text-completion models.

This package decouples the extraction pipeline from the concrete model
API it talks to.
"""

from nutribot.providers.completion_provider import CompletionServiceError, TextCompletionService
from nutribot.providers.gemini_provider import GeminiCompletionService

__all__ = [
    "CompletionServiceError",
    "TextCompletionService",
    "GeminiCompletionService",
]

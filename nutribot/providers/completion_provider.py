"""Abstract base class for text-completion services.

The extraction pipeline depends ONLY on this interface: a prompt goes in,
text comes out. Concrete implementations wrap a hosted model API.
"""

from abc import ABC, abstractmethod


class CompletionServiceError(Exception):
    """Exception for text-completion provider errors.

    Raised by providers; the extractor wraps it in ExtractionError.
    """
    def __init__(self, error_code: str, message: str):
        self.error_code = error_code
        self.message = message
        super().__init__(f"{error_code}: {message}")


class TextCompletionService(ABC):
    """Abstraction for a prompt-in, text-out model call."""

    @abstractmethod
    async def complete(self, prompt: str) -> str:
        """Return the model's text response for *prompt*.

        The response may be wrapped in code-fence markup; callers must
        not assume bare JSON.

        Raises:
            CompletionServiceError: On network, auth, quota or empty-response
                failures. Any other exception is also treated as a
                service failure by the extractor.
        """
        ...

"""Abstract base class for LLM access."""

from abc import ABC, abstractmethod
from typing import Iterator


class LLMAdapter(ABC):
    """Abstract interface for LLM text generation."""

    @abstractmethod
    def generate(
        self,
        prompt: str,
        model: str,
        temperature: float = 0.4,
        max_tokens: int = 512,
        stream: bool = False,
    ) -> Iterator[str]:
        """Generate text from a prompt.

        Args:
            prompt: The input prompt text
            model: Model name (e.g., "gemini-2.0-flash")
            temperature: Sampling temperature (0.0-2.0)
            max_tokens: Maximum tokens to generate
            stream: Whether to stream text chunks

        Yields:
            Text chunks (if streaming) or the full text in one yield

        Raises:
            ConfigError: No API key configured
            LLMUnavailableError: Service not reachable or returned an error
            ModelNotFoundError: Model not available
            LLMTimeoutError: Request timed out
        """
        ...

"""
PetProject Backend - Abstract Text-Generation Client Interface
================================================================

What:  Contract for the generative model used by the AI answer task and the
       medical-record scanner.
How:   Concrete clients inherit from TextGenerationClient and implement
       generate(). Callers never see provider types, only strings and
       petproject exceptions.
Who:   AIAnswerService, ScanService, and the health endpoint.
"""

from abc import ABC, abstractmethod
from typing import Optional


class TextGenerationClient(ABC):
    """
    Abstract interface for prompt-in, text-out generation.

    Contract:
        - generate() returns the model's text output, stripped. It never
          returns None.
        - Implementations handle their own retry logic and error translation;
          provider errors surface as LLMServiceError or CircuitBreakerOpenError.
        - With json_output=True the model is asked for a JSON document. The
          caller still parses (and must tolerate non-JSON output).

    Implementations:
        - GeminiService: Google Gemini through google-generativeai
    """

    @abstractmethod
    async def generate(
        self,
        prompt: str,
        system_instruction: Optional[str] = None,
        inline_data: Optional[bytes] = None,
        mime_type: Optional[str] = None,
        json_output: bool = True,
    ) -> str:
        """
        Run a single-turn generation.

        Args:
            prompt: The user prompt.
            system_instruction: Optional system prompt fixing the model's role.
            inline_data: Optional binary attachment (image or PDF) sent with
                the prompt. Requires mime_type.
            mime_type: MIME type of inline_data.
            json_output: Ask the model to respond with JSON.

        Raises:
            LLMServiceError: Generation failed after all retries.
            CircuitBreakerOpenError: Too many recent failures.
        """
        ...

    @abstractmethod
    async def health_check(self) -> bool:
        """True if the provider is reachable and authenticated."""
        ...

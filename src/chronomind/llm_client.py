"""Text-generation oracle used by the fact extractor.

The memory core only needs one capability from a language model: turn a
prompt into text. ``TextOracle`` describes that capability so the
extractor never depends on a specific provider.
"""

from typing import Any, Protocol

from groq import AsyncGroq

DEFAULT_MODEL = "llama-3.1-70b-versatile"


class TextOracle(Protocol):
    """Anything that can complete a prompt into free-form text."""

    async def complete(self, prompt: str, system: str | None = None) -> str:
        ...


class GroqLLMClient:
    """TextOracle implementation that wraps AsyncGroq.

    Example:
        from groq import AsyncGroq
        from chronomind.llm_client import GroqLLMClient

        groq = AsyncGroq(api_key="...")
        oracle = GroqLLMClient(groq, model="llama-3.1-70b-versatile")
        extractor = FactExtractor(oracle)
    """

    def __init__(
        self,
        client: AsyncGroq,
        model: str = DEFAULT_MODEL,
        temperature: float = 0.1,
    ) -> None:
        """Initialize the Groq client wrapper.

        Args:
            client: The AsyncGroq client instance to wrap.
            model: The model to use for completions.
            temperature: Sampling temperature; low for consistent extraction.
        """
        self._client = client
        self._model = model
        self._temperature = temperature

    async def complete(self, prompt: str, system: str | None = None) -> str:
        """Complete a prompt and return the text response.

        Args:
            prompt: The user prompt to complete.
            system: Optional system prompt to set context.

        Returns:
            The model's text response, empty if it returned no content.
        """
        messages: list[dict[str, Any]] = []

        if system:
            messages.append({"role": "system", "content": system})

        messages.append({"role": "user", "content": prompt})

        response = await self._client.chat.completions.create(
            model=self._model,
            messages=messages,
            temperature=self._temperature,
        )

        return response.choices[0].message.content or ""

    @property
    def model(self) -> str:
        """Return the model being used."""
        return self._model

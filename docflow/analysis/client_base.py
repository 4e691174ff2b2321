from abc import ABC, abstractmethod


class BaseAnalysisClient(ABC):
    """Contract for provider-specific chat completion clients."""

    @abstractmethod
    def create_chat_completion(
        self,
        *,
        task: str,
        model: str,
        temperature: float,
        system_prompt: str,
        user_prompt: str,
        json_schema: dict[str, object] | None = None,
    ) -> str:
        """Return the provider response as plain text.

        ``task`` names the capability (``classification``, ``sentiment``...).
        When ``json_schema`` is given the provider is asked for structured
        output matching it.
        """

from typing import ClassVar

from docflow.analysis.client_base import BaseAnalysisClient
from docflow.analysis.example_client_adapter import ExampleClientAdapter
from docflow.analysis.models import CapabilityProviders
from docflow.analysis.openai_client_adapter import OpenAIClientAdapter
from docflow.analysis.providers import (
    ChatClassifier,
    ChatComparator,
    ChatQuestionAnswerer,
    ChatSentimentAnalyzer,
    ChatStructuredExtractor,
    ChatSummarizer,
)
from docflow.config.settings import Settings


class AnalysisFactory:
    """Creates the capability providers for the configured AI provider."""

    OPENAI_COMPATIBLE_BASE_URLS: ClassVar[dict[str, str]] = {
        "openrouter": "https://openrouter.ai/api/v1",
        "groq": "https://api.groq.com/openai/v1",
        "together": "https://api.together.xyz/v1",
        "deepseek": "https://api.deepseek.com/v1",
        "ollama": "http://localhost:11434/v1",
    }

    @classmethod
    def create(cls, settings: Settings) -> CapabilityProviders:
        provider = settings.analysis_provider.lower()
        client = cls._create_client(provider, settings)
        options = {
            "client": client,
            "model": "example" if provider == "example" else settings.analysis_model_name,
            "temperature": settings.analysis_temperature,
        }
        return CapabilityProviders(
            classifier=ChatClassifier(**options),
            structured_extractor=ChatStructuredExtractor(**options),
            sentiment_analyzer=ChatSentimentAnalyzer(**options),
            summarizer=ChatSummarizer(**options),
            comparator=ChatComparator(**options),
            question_answerer=ChatQuestionAnswerer(**options),
        )

    @classmethod
    def _create_client(cls, provider: str, settings: Settings) -> BaseAnalysisClient:
        if provider == "example":
            return ExampleClientAdapter()
        return OpenAIClientAdapter(
            api_key=settings.analysis_api_key,
            timeout_seconds=settings.analysis_timeout_seconds,
            base_url=cls._resolve_base_url(provider, settings),
        )

    @classmethod
    def _resolve_base_url(cls, provider: str, settings: Settings) -> str | None:
        configured = settings.analysis_base_url.strip()
        if provider == "openai":
            return configured or None
        if provider == "openai_compatible":
            if not configured:
                raise ValueError(
                    "analysis_base_url is required for analysis_provider=openai_compatible"
                )
            return configured
        default_base_url = cls.OPENAI_COMPATIBLE_BASE_URLS.get(provider)
        if default_base_url is not None:
            return configured or default_base_url
        supported = [
            "example",
            "openai",
            "openai_compatible",
            *sorted(cls.OPENAI_COMPATIBLE_BASE_URLS),
        ]
        raise ValueError(
            f"Unknown analysis provider '{provider}'. Choose from: {supported}"
        )

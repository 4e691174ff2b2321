"""Capability providers backed by a chat completion client."""

from pathlib import Path

from docflow.analysis.base import (
    BaseClassifier,
    BaseComparator,
    BaseQuestionAnswerer,
    BaseSentimentAnalyzer,
    BaseStructuredExtractor,
    BaseSummarizer,
)
from docflow.analysis.client_base import BaseAnalysisClient
from docflow.analysis.exceptions import ProviderResponseError
from docflow.analysis.models import Classification
from docflow.analysis.parsing import clamp_percentage, parse_json_object, parse_score
from docflow.analysis.prompt_loader import load_prompt_template
from docflow.analysis.schemas import (
    CLASSIFICATION_LABELS,
    classification_json_schema,
    fields_json_schema,
)
from docflow.database.models import UNCLASSIFIED
from docflow.logging.logger import Log


class _ChatCapability:
    """Shared plumbing: one prompt template, one client, one model."""

    TASK = ""
    TEMPLATE = ""

    def __init__(
        self,
        *,
        client: BaseAnalysisClient,
        model: str,
        temperature: float = 0.0,
        prompt_dir: Path | None = None,
        system_prompt: str = "",
    ) -> None:
        self._client = client
        self._model = model
        self._temperature = max(0.0, min(1.0, temperature))
        self._system_prompt = system_prompt
        self._template = load_prompt_template(self.TEMPLATE, prompt_dir)

    def _complete(self, json_schema: dict[str, object] | None = None, **values: str) -> str:
        prompt = self._template.format(**values)
        Log.debug(f"{self.TASK} prompt:\n{prompt}")
        raw = self._client.create_chat_completion(
            task=self.TASK,
            model=self._model,
            temperature=self._temperature,
            system_prompt=self._system_prompt,
            user_prompt=prompt,
            json_schema=json_schema,
        )
        Log.debug(f"{self.TASK} raw response:\n{raw}")
        return raw


class ChatClassifier(_ChatCapability, BaseClassifier):
    TASK = "classification"
    TEMPLATE = "classification_prompt.txt"

    def classify(self, text: str) -> Classification:
        raw = self._complete(
            classification_json_schema(),
            text=text,
            labels=", ".join(f"'{label}'" for label in CLASSIFICATION_LABELS),
        )
        try:
            parsed = parse_json_object(raw)
        except ProviderResponseError as exc:
            Log.warning(f"Unparseable classification response, defaulting: {exc}")
            return Classification(label=UNCLASSIFIED, confidence=0)

        label = parsed.get("label") or parsed.get("type")
        confidence = parsed.get("confidence", parsed.get("score"))
        if not isinstance(label, str) or not label.strip():
            return Classification(label=UNCLASSIFIED, confidence=0)
        return Classification(label=label.strip(), confidence=_confidence_of(confidence))


def _confidence_of(value: object) -> int:
    if isinstance(value, str):
        return parse_score(value)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    return clamp_percentage(int(value))


class ChatStructuredExtractor(_ChatCapability, BaseStructuredExtractor):
    TASK = "structured_fields"
    TEMPLATE = "structured_prompt.txt"

    def extract(self, text: str, label: str, fields: tuple[str, ...]) -> dict[str, str]:
        raw = self._complete(
            fields_json_schema(fields),
            text=text,
            label=label,
            fields=", ".join(f'"{name}"' for name in fields),
        )
        parsed = parse_json_object(raw)
        return {
            name: str(parsed[name])
            for name in fields
            if name in parsed and parsed[name] is not None
        }


class ChatSentimentAnalyzer(_ChatCapability, BaseSentimentAnalyzer):
    TASK = "sentiment"
    TEMPLATE = "sentiment_prompt.txt"

    def analyze(self, text: str) -> str:
        return self._complete(text=text).strip().strip(".'\"")


class ChatSummarizer(_ChatCapability, BaseSummarizer):
    TASK = "summary"
    TEMPLATE = "summary_prompt.txt"

    def summarize(self, text: str) -> str:
        return self._complete(text=text).strip()


class ChatComparator(_ChatCapability, BaseComparator):
    TASK = "comparison"
    TEMPLATE = "comparison_prompt.txt"

    def compare(self, text_a: str, text_b: str) -> int:
        return parse_score(self._complete(text_a=text_a, text_b=text_b))


class ChatQuestionAnswerer(_ChatCapability, BaseQuestionAnswerer):
    TASK = "question"
    TEMPLATE = "question_prompt.txt"

    def answer(self, text: str, question: str) -> str:
        return self._complete(text=text, question=question).strip()

"""The six pipeline stages.

Each stage owns one pending/completion status pair, the record fields it
produces and the audit lines it writes. Stages compute their result from a
snapshot of the record and never persist anything themselves; the
orchestrator applies the result under the record writer.
"""

import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from html import escape
from typing import ClassVar

from docflow.analysis.base import (
    BaseClassifier,
    BaseSentimentAnalyzer,
    BaseStructuredExtractor,
)
from docflow.analysis.limits import (
    CLASSIFICATION_CHARS,
    SENTIMENT_CHARS,
    STRUCTURED_EXTRACTION_CHARS,
    bounded,
)
from docflow.analysis.parsing import clamp_percentage
from docflow.analysis.schemas import fields_for
from docflow.database.models import (
    UNCLASSIFIED,
    DocumentRecord,
    DocumentStatus,
    Sentiment,
)
from docflow.extraction.exceptions import ExtractionError
from docflow.extraction.registry import ExtractorRegistry
from docflow.logging.logger import Log
from docflow.notification.base import BaseNotifier, BaseOwnerDirectory
from docflow.pipeline.policy import RenameSynthesizer, RoutingResolver
from docflow.storage.file_store import FileStore

_KNOWN_SENTIMENTS = {
    sentiment.value.lower(): sentiment
    for sentiment in (Sentiment.POSITIVE, Sentiment.NEGATIVE, Sentiment.NEUTRAL)
}


@dataclass(frozen=True)
class StageResult:
    """Outcome of one stage run: the audit line and the fields to merge."""

    message: str
    apply: Callable[[DocumentRecord], None] | None = None


class PipelineStage(ABC):
    name: ClassVar[str]
    pending: ClassVar[DocumentStatus]
    done: ClassVar[DocumentStatus]
    start_message: ClassVar[str]
    error_label: ClassVar[str]
    requires_text: ClassVar[bool] = False

    @abstractmethod
    def clear(self, record: DocumentRecord) -> None:
        """Reset the fields this stage produces."""

    @abstractmethod
    def run(self, record: DocumentRecord) -> StageResult: ...

    def recover(self, record: DocumentRecord, exc: Exception) -> StageResult | None:
        """Turn a failure into a result. None means the failure is fatal."""
        return None

    def after_commit(self, record: DocumentRecord) -> None:
        """Hook run once the completion status has been persisted."""


class ExtractionStage(PipelineStage):
    name = "extraction"
    pending = DocumentStatus.EXTRACTION_PENDING
    done = DocumentStatus.EXTRACTED
    start_message = "Starting text extraction..."
    error_label = "Extraction"

    def __init__(self, file_store: FileStore, extractors: ExtractorRegistry) -> None:
        self._file_store = file_store
        self._extractors = extractors

    def clear(self, record: DocumentRecord) -> None:
        record.extracted_text = ""

    def run(self, record: DocumentRecord) -> StageResult:
        started = time.monotonic()
        content = self._file_store.load(record.storage_key)
        extractor = self._extractors.for_media_type(record.media_type)
        text = extractor.extract(content)
        if not text.strip():
            raise ExtractionError("No text could be extracted")
        elapsed = time.monotonic() - started

        def apply(target: DocumentRecord) -> None:
            target.extracted_text = text

        return StageResult(f"Extraction complete in {elapsed:.2f}s.", apply)


class ClassificationStage(PipelineStage):
    name = "classification"
    pending = DocumentStatus.CLASSIFICATION_PENDING
    done = DocumentStatus.CLASSIFIED
    start_message = "Classifying document..."
    error_label = "Classification"
    requires_text = True

    def __init__(self, classifier: BaseClassifier) -> None:
        self._classifier = classifier

    def clear(self, record: DocumentRecord) -> None:
        record.classification_label = UNCLASSIFIED
        record.classification_confidence = 0

    def run(self, record: DocumentRecord) -> StageResult:
        result = self._classifier.classify(bounded(record.extracted_text, CLASSIFICATION_CHARS))
        label = (result.label or "").strip() or UNCLASSIFIED
        confidence = clamp_percentage(int(result.confidence)) if label != UNCLASSIFIED else 0

        def apply(target: DocumentRecord) -> None:
            target.classification_label = label
            target.classification_confidence = confidence

        return StageResult(f"Classified as {label} with {confidence}% confidence.", apply)


class StructuredDataStage(PipelineStage):
    name = "structured_extraction"
    pending = DocumentStatus.DATA_EXTRACTION_PENDING
    done = DocumentStatus.DATA_EXTRACTED
    start_message = "Extracting structured data..."
    error_label = "Data Extraction"
    requires_text = True

    def __init__(self, extractor: BaseStructuredExtractor) -> None:
        self._extractor = extractor

    def clear(self, record: DocumentRecord) -> None:
        record.structured_data = {}

    def run(self, record: DocumentRecord) -> StageResult:
        label = record.classification_label
        fields = fields_for(label)
        if not fields:
            return StageResult(f"No structured data schema for {label}.", _store_structured({}))

        extracted = self._extractor.extract(
            bounded(record.extracted_text, STRUCTURED_EXTRACTION_CHARS), label, fields
        )
        data = {name: str(extracted[name]) for name in fields if name in extracted}
        return StageResult("Structured data extracted successfully.", _store_structured(data))


def _store_structured(data: dict[str, str]) -> Callable[[DocumentRecord], None]:
    def apply(target: DocumentRecord) -> None:
        target.structured_data = dict(data)

    return apply


class SentimentStage(PipelineStage):
    name = "sentiment"
    pending = DocumentStatus.SENTIMENT_PENDING
    done = DocumentStatus.ANALYZED
    start_message = "Analyzing sentiment..."
    error_label = "Sentiment"
    requires_text = True

    def __init__(self, analyzer: BaseSentimentAnalyzer) -> None:
        self._analyzer = analyzer

    def clear(self, record: DocumentRecord) -> None:
        record.sentiment = Sentiment.NOT_AVAILABLE

    def run(self, record: DocumentRecord) -> StageResult:
        try:
            raw = self._analyzer.analyze(bounded(record.extracted_text, SENTIMENT_CHARS))
        except Exception as exc:
            Log.warning(f"Sentiment analysis unavailable for document {record.id}: {exc}")
            sentiment = Sentiment.NOT_AVAILABLE
        else:
            sentiment = normalize_sentiment(raw)

        def apply(target: DocumentRecord) -> None:
            target.sentiment = sentiment

        return StageResult(f"Sentiment analyzed as: {sentiment.value}.", apply)


def normalize_sentiment(raw: str | None) -> Sentiment:
    """Map a provider answer onto Positive/Negative/Neutral."""
    if not raw:
        return Sentiment.NEUTRAL
    return _KNOWN_SENTIMENTS.get(raw.strip().strip(".'\"").lower(), Sentiment.NEUTRAL)


class RenameStage(PipelineStage):
    name = "rename"
    pending = DocumentStatus.RENAMING_PENDING
    done = DocumentStatus.RENAMED
    start_message = "Generating new filename..."
    error_label = "Rename"

    def __init__(self, synthesizer: RenameSynthesizer) -> None:
        self._synthesizer = synthesizer

    def clear(self, record: DocumentRecord) -> None:
        record.original_display_name = record.uploaded_display_name

    def run(self, record: DocumentRecord) -> StageResult:
        name = self._synthesizer.synthesize(
            record.classification_label,
            record.structured_data,
            record.original_display_name,
        )

        def apply(target: DocumentRecord) -> None:
            target.original_display_name = name

        return StageResult(f"Document name updated to: {name}.", apply)

    def recover(self, record: DocumentRecord, exc: Exception) -> StageResult | None:
        # Display name stays as it is; the chain continues to routing.
        return StageResult(f"File renaming failed: {exc}")


class RoutingStage(PipelineStage):
    name = "routing"
    pending = DocumentStatus.ROUTING_PENDING
    done = DocumentStatus.ROUTED
    start_message = "Applying routing rules..."
    error_label = "Routing"

    def __init__(
        self,
        resolver: RoutingResolver,
        notifier: BaseNotifier,
        owners: BaseOwnerDirectory,
    ) -> None:
        self._resolver = resolver
        self._notifier = notifier
        self._owners = owners

    def clear(self, record: DocumentRecord) -> None:
        record.route_destination = None

    def run(self, record: DocumentRecord) -> StageResult:
        destination = self._resolver.resolve(record.classification_label)

        def apply(target: DocumentRecord) -> None:
            target.route_destination = destination

        return StageResult(f"Document routed: {destination}", apply)

    def after_commit(self, record: DocumentRecord) -> None:
        owner = self._owners.find(record.owner_id)
        if owner is None or not owner.email:
            Log.info(f"No notification address for owner {record.owner_id}, skipping")
            return
        subject = f"Document Processed: {record.original_display_name}"
        self._notifier.notify(owner.email, subject, routing_summary(record, owner.username))


def routing_summary(record: DocumentRecord, username: str) -> str:
    """HTML body of the owner notification sent after routing."""
    rows = [
        ("Classification", record.classification_label),
        ("Confidence", f"{record.classification_confidence}%"),
        ("Routed to", record.route_destination or ""),
        ("Sentiment", record.sentiment.value),
    ]
    items = "".join(f"<li><b>{label}:</b> {escape(value)}</li>" for label, value in rows)
    return (
        f"<p>Hello {escape(username or 'there')},</p>"
        f"<p>Your document <b>{escape(record.original_display_name)}</b> has been processed.</p>"
        f"<ul>{items}</ul>"
    )

import threading
import uuid
from collections.abc import Generator
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any
from unittest.mock import MagicMock

import pytest

from docflow.analysis.base import BaseClassifier, BaseSentimentAnalyzer, BaseStructuredExtractor
from docflow.analysis.exceptions import ProviderNetworkError
from docflow.analysis.models import Classification
from docflow.database.models import (
    FORWARD_ORDER,
    DocumentRecord,
    DocumentStatus,
    Owner,
    Sentiment,
)
from docflow.database.repositories.memory_repository import MemoryDocumentRepository
from docflow.events.base import DOCUMENT_DELETED, DOCUMENT_UPDATED, BaseEventPublisher
from docflow.events.memory_bus import InMemoryEventBus
from docflow.extraction.plain_text_adapter import PlainTextAdapter
from docflow.extraction.registry import ExtractorRegistry
from docflow.notification.base import BaseNotifier
from docflow.notification.directory import StaticOwnerDirectory
from docflow.pipeline.orchestrator import CLASSIFICATION, EXTRACTION, Orchestrator
from docflow.pipeline.policy import RenameSynthesizer, RoutingResolver
from docflow.pipeline.stages import (
    ClassificationStage,
    ExtractionStage,
    RenameStage,
    RoutingStage,
    SentimentStage,
    StructuredDataStage,
)
from docflow.pipeline.writer import RecordWriter
from docflow.storage.file_store import FileStore
from docflow.worker.dispatcher import SerialDispatcher

INVOICE_TEXT = b"INVOICE 42 from Acme Corp dated 2024-01-31"


@dataclass
class _Harness:
    orchestrator: Orchestrator
    repository: MemoryDocumentRepository
    writer: RecordWriter
    dispatcher: SerialDispatcher
    store: FileStore
    classifier: MagicMock
    structured: MagicMock
    sentiment: MagicMock
    synthesizer: MagicMock
    notifier: MagicMock
    events: list[tuple[str, dict[str, Any]]] = field(default_factory=list)

    def seed(self, content: bytes = INVOICE_TEXT, **overrides: object) -> DocumentRecord:
        key = self.store.save("user-1", "scan.txt", content)
        record = DocumentRecord(
            id=uuid.uuid4().hex,
            owner_id="user-1",
            original_display_name="scan.txt",
            uploaded_display_name="scan.txt",
            storage_key=key,
            media_type="text/plain",
            size_bytes=len(content),
        )
        for name, value in overrides.items():
            setattr(record, name, value)
        return self.writer.create(record)

    def run(self, document_id: str, stage: str = EXTRACTION) -> DocumentRecord | None:
        self.orchestrator.trigger(document_id, stage)
        assert self.dispatcher.wait_idle(timeout=5)
        return self.repository.get(document_id)

    def statuses(self, document_id: str) -> list[str]:
        return [
            payload["status"]
            for name, payload in self.events
            if name == DOCUMENT_UPDATED and payload["id"] == document_id
        ]


@pytest.fixture()
def harness(tmp_path: Path) -> Generator[_Harness, None, None]:
    repository = MemoryDocumentRepository()
    bus = InMemoryEventBus()
    writer = RecordWriter(repository, bus)
    dispatcher = SerialDispatcher(max_workers=4)
    store = FileStore(tmp_path)
    plain = PlainTextAdapter()
    registry = ExtractorRegistry(pdf=plain, image=plain, word_processing=plain, fallback=plain)

    classifier = MagicMock(spec=BaseClassifier)
    classifier.classify.return_value = Classification(label="Invoice", confidence=92)
    structured = MagicMock(spec=BaseStructuredExtractor)
    structured.extract.return_value = {"vendorName": "Acme Corp", "invoiceDate": "2024-01-31"}
    sentiment = MagicMock(spec=BaseSentimentAnalyzer)
    sentiment.analyze.return_value = "Positive"
    synthesizer = MagicMock(spec=RenameSynthesizer, wraps=RenameSynthesizer())
    notifier = MagicMock(spec=BaseNotifier)
    owners = StaticOwnerDirectory([Owner(id="user-1", email="owner@example.com", username="owner")])

    orchestrator = Orchestrator(
        repository=repository,
        writer=writer,
        dispatcher=dispatcher,
        stages=[
            ExtractionStage(store, registry),
            ClassificationStage(classifier),
            StructuredDataStage(structured),
            SentimentStage(sentiment),
            RenameStage(synthesizer),
            RoutingStage(RoutingResolver(), notifier, owners),
        ],
    )
    h = _Harness(
        orchestrator=orchestrator,
        repository=repository,
        writer=writer,
        dispatcher=dispatcher,
        store=store,
        classifier=classifier,
        structured=structured,
        sentiment=sentiment,
        synthesizer=synthesizer,
        notifier=notifier,
    )
    bus.subscribe(lambda name, payload: h.events.append((name, payload)))
    yield h
    dispatcher.shutdown()


def _assert_forward_progress(statuses: list[str]) -> None:
    """Each status change is one step forward, a re-entry, or a failure."""
    distinct = [s for i, s in enumerate(statuses) if i == 0 or s != statuses[i - 1]]
    for previous, current in zip(distinct, distinct[1:]):
        if current == DocumentStatus.FAILED.value:
            assert previous not in (DocumentStatus.ROUTED.value, DocumentStatus.FAILED.value)
            continue
        target = DocumentStatus(current)
        if target.is_pending and previous in (DocumentStatus.ROUTED.value, DocumentStatus.FAILED.value):
            continue
        step = FORWARD_ORDER.index(target) - FORWARD_ORDER.index(DocumentStatus(previous))
        assert step == 1 or target.is_pending, f"{previous} -> {current}"


class _FailOnStatus(BaseEventPublisher):
    """Forwards events, except that it raises once for the given status."""

    def __init__(self, inner: BaseEventPublisher, status: str) -> None:
        self._inner = inner
        self._status = status
        self.failures = 0

    def publish(self, event_name: str, payload: dict[str, Any]) -> None:
        if payload.get("status") == self._status and not self.failures:
            self.failures += 1
            raise ConnectionError("event backend unavailable")
        self._inner.publish(event_name, payload)

class TestHappyPath:
    def test_invoice_reaches_routed(self, harness: _Harness) -> None:
        doc = harness.seed()

        final = harness.run(doc.id)

        assert final is not None
        assert final.status is DocumentStatus.ROUTED
        assert final.extracted_text == INVOICE_TEXT.decode()
        assert final.classification_label == "Invoice"
        assert final.classification_confidence == 92
        assert final.structured_data == {"vendorName": "Acme Corp", "invoiceDate": "2024-01-31"}
        assert final.sentiment is Sentiment.POSITIVE
        assert final.original_display_name == "Invoice_Acme_Corp_2024-01-31.txt"
        assert final.route_destination == "Accounting"
        assert final.storage_key == doc.storage_key

    def test_every_status_is_published_in_order(self, harness: _Harness) -> None:
        doc = harness.seed()

        harness.run(doc.id)

        assert harness.statuses(doc.id) == [status.value for status in FORWARD_ORDER]

    def test_audit_trail(self, harness: _Harness) -> None:
        doc = harness.seed()

        final = harness.run(doc.id)

        messages = [entry.message for entry in final.logs]  # type: ignore[union-attr]
        assert messages[0] == "Starting text extraction..."
        assert messages[1].startswith("Extraction complete in ")
        assert messages[2:] == [
            "Classifying document...",
            "Classified as Invoice with 92% confidence.",
            "Extracting structured data...",
            "Structured data extracted successfully.",
            "Analyzing sentiment...",
            "Sentiment analyzed as: Positive.",
            "Generating new filename...",
            "Document name updated to: Invoice_Acme_Corp_2024-01-31.txt.",
            "Applying routing rules...",
            "Document routed: Accounting",
        ]
        timestamps = [entry.timestamp for entry in final.logs]  # type: ignore[union-attr]
        assert timestamps == sorted(timestamps)

    def test_owner_is_notified_once(self, harness: _Harness) -> None:
        doc = harness.seed()

        harness.run(doc.id)

        harness.notifier.notify.assert_called_once()
        assert harness.notifier.notify.call_args.args[0] == "owner@example.com"

    def test_label_without_schema_skips_structured_provider(self, harness: _Harness) -> None:
        harness.classifier.classify.return_value = Classification(label="Resume", confidence=88)
        doc = harness.seed()

        final = harness.run(doc.id)

        assert final.structured_data == {}  # type: ignore[union-attr]
        assert final.route_destination == "HR"  # type: ignore[union-attr]
        assert final.original_display_name == "scan.txt"  # type: ignore[union-attr]
        harness.structured.extract.assert_not_called()


class TestFailures:
    def test_empty_extraction_fails(self, harness: _Harness) -> None:
        doc = harness.seed(content=b"   ")

        final = harness.run(doc.id)

        assert final.status is DocumentStatus.FAILED  # type: ignore[union-attr]
        assert final.logs[-1].message == "Extraction Error: No text could be extracted"  # type: ignore[union-attr]
        harness.classifier.classify.assert_not_called()

    def test_provider_error_fails_and_halts(self, harness: _Harness) -> None:
        harness.classifier.classify.side_effect = ProviderNetworkError("AI provider network error")
        doc = harness.seed()

        final = harness.run(doc.id)

        assert final.status is DocumentStatus.FAILED  # type: ignore[union-attr]
        assert final.logs[-1].message == "Classification Error: AI provider network error"  # type: ignore[union-attr]
        harness.structured.extract.assert_not_called()
        harness.notifier.notify.assert_not_called()
        assert harness.statuses(doc.id)[-2:] == ["Classification_Pending", "Failed"]
        _assert_forward_progress(harness.statuses(doc.id))

    def test_sentiment_error_is_not_a_failure(self, harness: _Harness) -> None:
        harness.sentiment.analyze.side_effect = ProviderNetworkError("timeout")
        doc = harness.seed()

        final = harness.run(doc.id)

        assert final.status is DocumentStatus.ROUTED  # type: ignore[union-attr]
        assert final.sentiment is Sentiment.NOT_AVAILABLE  # type: ignore[union-attr]

    def test_unrecognized_sentiment_is_neutral(self, harness: _Harness) -> None:
        harness.sentiment.analyze.return_value = "Angry"
        doc = harness.seed()

        final = harness.run(doc.id)

        assert final.sentiment is Sentiment.NEUTRAL  # type: ignore[union-attr]

    def test_rename_failure_still_routes(self, harness: _Harness) -> None:
        harness.synthesizer.synthesize.side_effect = OSError("name service down")
        doc = harness.seed()

        final = harness.run(doc.id)

        assert final.status is DocumentStatus.ROUTED  # type: ignore[union-attr]
        assert final.original_display_name == "scan.txt"  # type: ignore[union-attr]
        messages = [entry.message for entry in final.logs]  # type: ignore[union-attr]
        assert "File renaming failed: name service down" in messages

    def test_notification_failure_does_not_affect_record(self, harness: _Harness) -> None:
        harness.notifier.notify.side_effect = RuntimeError("smtp down")
        doc = harness.seed()

        final = harness.run(doc.id)

        assert final.status is DocumentStatus.ROUTED  # type: ignore[union-attr]

    def test_failed_publish_does_not_halt_the_chain(self, harness: _Harness) -> None:
        bus = harness.writer._publisher
        flaky = _FailOnStatus(bus, DocumentStatus.EXTRACTED.value)
        harness.writer._publisher = flaky
        doc = harness.seed()

        final = harness.run(doc.id)

        assert flaky.failures == 1
        assert final.status is DocumentStatus.ROUTED  # type: ignore[union-attr]
        statuses = harness.statuses(doc.id)
        assert DocumentStatus.EXTRACTED.value not in statuses
        assert statuses[-1] == DocumentStatus.ROUTED.value


class TestBookkeeping:
    def test_finished_chain_releases_its_entries(self, harness: _Harness) -> None:
        doc = harness.seed()
        harness.run(doc.id)

        assert harness.orchestrator.generation(doc.id) == 0
        assert harness.writer._locks == {}

    def test_failed_chain_releases_its_entries(self, harness: _Harness) -> None:
        harness.classifier.classify.side_effect = ProviderNetworkError("down")
        doc = harness.seed()

        final = harness.run(doc.id)

        assert final.status is DocumentStatus.FAILED  # type: ignore[union-attr]
        assert harness.orchestrator.generation(doc.id) == 0

    def test_generations_are_never_reused(self, harness: _Harness) -> None:
        seen = []
        for _ in range(2):
            gate = threading.Event()
            harness.dispatcher.submit("doc-x", lambda: gate.wait(timeout=5))
            harness.orchestrator.trigger("doc-x", EXTRACTION)
            seen.append(harness.orchestrator.generation("doc-x"))
            gate.set()
            assert harness.dispatcher.wait_idle(timeout=5)
            assert harness.orchestrator.generation("doc-x") == 0

        assert seen[1] > seen[0] > 0


class TestReentry:
    def test_re_extract_resets_and_reruns(self, harness: _Harness) -> None:
        doc = harness.seed()
        harness.run(doc.id)
        harness.classifier.classify.return_value = Classification(label="Report", confidence=75)
        harness.events.clear()

        final = harness.run(doc.id, EXTRACTION)

        assert final.status is DocumentStatus.ROUTED  # type: ignore[union-attr]
        first = harness.events[0][1]
        assert first["status"] == "Extraction_Pending"
        assert first["extracted_text"] == ""
        assert first["classification_label"] == "Unclassified"
        assert first["structured_data"] == {}
        assert first["route_destination"] is None
        assert first["original_display_name"] == "scan.txt"
        assert final.classification_label == "Report"  # type: ignore[union-attr]
        assert final.route_destination == "General Archive"  # type: ignore[union-attr]
        _assert_forward_progress(harness.statuses(doc.id))

    def test_re_extract_after_failure(self, harness: _Harness) -> None:
        harness.classifier.classify.side_effect = ProviderNetworkError("down")
        doc = harness.seed()
        assert harness.run(doc.id).status is DocumentStatus.FAILED  # type: ignore[union-attr]
        harness.classifier.classify.side_effect = None

        final = harness.run(doc.id, EXTRACTION)

        assert final.status is DocumentStatus.ROUTED  # type: ignore[union-attr]

    def test_re_classify_keeps_text_and_resets_downstream(self, harness: _Harness) -> None:
        doc = harness.seed()
        harness.run(doc.id)
        harness.events.clear()

        final = harness.run(doc.id, CLASSIFICATION)

        first = harness.events[0][1]
        assert first["status"] == "Classification_Pending"
        assert first["extracted_text"] == INVOICE_TEXT.decode()
        assert first["sentiment"] == "NotAvailable"
        assert final.status is DocumentStatus.ROUTED  # type: ignore[union-attr]
        assert final.original_display_name == "Invoice_Acme_Corp_2024-01-31.txt"  # type: ignore[union-attr]

    def test_re_classify_without_text_is_a_no_op(self, harness: _Harness) -> None:
        doc = harness.seed(status=DocumentStatus.FAILED)
        harness.events.clear()

        final = harness.run(doc.id, CLASSIFICATION)

        assert final.status is DocumentStatus.FAILED  # type: ignore[union-attr]
        assert harness.events == []
        harness.classifier.classify.assert_not_called()

    def test_concurrent_re_extract_and_re_classify(self, harness: _Harness) -> None:
        doc = harness.seed()
        harness.run(doc.id)
        harness.classifier.classify.reset_mock()
        gate = threading.Event()
        harness.dispatcher.submit(doc.id, lambda: gate.wait(timeout=5))

        harness.orchestrator.trigger(doc.id, EXTRACTION)
        harness.orchestrator.trigger(doc.id, CLASSIFICATION)
        gate.set()
        assert harness.dispatcher.wait_idle(timeout=5)

        final = harness.repository.get(doc.id)
        assert final.status is DocumentStatus.ROUTED  # type: ignore[union-attr]
        assert final.extracted_text == INVOICE_TEXT.decode()  # type: ignore[union-attr]
        assert final.route_destination == "Accounting"  # type: ignore[union-attr]
        # The extraction chain is superseded before it reaches classification.
        assert harness.classifier.classify.call_count == 1
        _assert_forward_progress(harness.statuses(doc.id))

    def test_unknown_stage_is_rejected(self, harness: _Harness) -> None:
        with pytest.raises(ValueError, match="Unknown pipeline stage"):
            harness.orchestrator.trigger("doc-x", "ocr")


class TestDeletion:
    def test_delete_mid_pipeline_abandons_silently(self, harness: _Harness) -> None:
        started = threading.Event()
        release = threading.Event()

        def slow_classify(text: str) -> Classification:
            started.set()
            release.wait(timeout=5)
            return Classification(label="Invoice", confidence=90)

        harness.classifier.classify.side_effect = slow_classify
        doc = harness.seed()
        harness.orchestrator.trigger(doc.id, EXTRACTION)
        assert started.wait(timeout=5)

        harness.orchestrator.forget(doc.id)
        assert harness.writer.remove(doc.id)
        release.set()
        assert harness.dispatcher.wait_idle(timeout=5)

        assert harness.repository.get(doc.id) is None
        names = [name for name, payload in harness.events if payload["id"] == doc.id]
        assert names[-1] == DOCUMENT_DELETED
        harness.structured.extract.assert_not_called()

    def test_trigger_on_missing_document_does_nothing(self, harness: _Harness) -> None:
        harness.run("missing")
        assert harness.events == []

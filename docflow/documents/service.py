import uuid
from dataclasses import dataclass
from functools import partial
from pathlib import Path

from docflow.analysis.exceptions import ProviderError
from docflow.analysis.factory import AnalysisFactory
from docflow.analysis.limits import QUESTION_CHARS, SUMMARY_CHARS, bounded
from docflow.analysis.models import CapabilityProviders
from docflow.config.settings import Settings
from docflow.database.factory import RepositoryFactory
from docflow.database.filters import validate_filter
from docflow.database.models import (
    DocumentFilter,
    DocumentPage,
    DocumentRecord,
    DocumentStats,
    DocumentStatus,
)
from docflow.database.repositories.base import BaseDocumentRepository
from docflow.documents import exports
from docflow.documents.exceptions import AuthorizationError, NotFoundError, ValidationError
from docflow.documents.models import ExportedFile, UploadedFile
from docflow.events.base import BaseEventPublisher
from docflow.events.factory import EventPublisherFactory
from docflow.extraction.factory import ExtractorFactory
from docflow.logging.logger import Log
from docflow.notification.base import BaseOwnerDirectory
from docflow.notification.directory import PostgresOwnerDirectory, StaticOwnerDirectory
from docflow.notification.smtp_notifier import SmtpNotifier
from docflow.pipeline.comparison import ComparisonRunner
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
from docflow.storage.exceptions import StorageError
from docflow.storage.file_store import FileStore
from docflow.worker.dispatcher import SerialDispatcher

SUMMARY_UNAVAILABLE = "Could not generate a summary at this time."
ANSWER_UNAVAILABLE = "Sorry, I could not answer that question at this time."

_UNANALYZED_STATUSES = frozenset({
    DocumentStatus.INGESTED,
    DocumentStatus.EXTRACTION_PENDING,
    DocumentStatus.EXTRACTED,
})


class DocumentService:
    """Operations offered to the upload/API surface.

    Every operation checks existence, ownership and input synchronously and
    raises before anything is scheduled. Pipeline work is handed to the
    dispatcher and the call returns immediately.
    """

    def __init__(
        self,
        *,
        repository: BaseDocumentRepository,
        writer: RecordWriter,
        orchestrator: Orchestrator,
        dispatcher: SerialDispatcher,
        comparison: ComparisonRunner,
        file_store: FileStore,
        providers: CapabilityProviders,
    ) -> None:
        self._repository = repository
        self._writer = writer
        self._orchestrator = orchestrator
        self._dispatcher = dispatcher
        self._comparison = comparison
        self._file_store = file_store
        self._providers = providers

    def trigger_upload(self, owner_id: str, upload: UploadedFile) -> DocumentRecord:
        if not owner_id:
            raise ValidationError("An owner is required.")
        if not upload.filename or not upload.filename.strip():
            raise ValidationError("A file name is required.")
        if not upload.content:
            raise ValidationError("No file uploaded.")

        filename = upload.filename.strip()
        storage_key = self._file_store.save(owner_id, filename, upload.content)
        record = DocumentRecord(
            id=str(uuid.uuid4()),
            owner_id=owner_id,
            original_display_name=filename,
            uploaded_display_name=filename,
            storage_key=storage_key,
            media_type=upload.media_type or "application/octet-stream",
            size_bytes=len(upload.content),
        )
        record.append_log(f"Document received from user {owner_id}.")
        created = self._writer.create(record)
        Log.info(f"Document {created.id} uploaded by {owner_id} as {storage_key}")
        self._orchestrator.trigger(created.id, EXTRACTION)
        return created

    def trigger_re_extract(self, document_id: str, requester_id: str) -> None:
        self._authorized(document_id, requester_id)
        self._orchestrator.trigger(document_id, EXTRACTION)

    def trigger_re_classify(self, document_id: str, requester_id: str) -> None:
        self._authorized(document_id, requester_id)
        self._orchestrator.trigger(document_id, CLASSIFICATION)

    def trigger_compare(self, document_id: str, target_ids: list[str], requester_id: str) -> None:
        if not isinstance(target_ids, list) or not all(isinstance(t, str) for t in target_ids):
            raise ValidationError("Target document ids must be a list of strings.")
        source = self._authorized(document_id, requester_id)
        if not source.extracted_text:
            raise ValidationError("Source document has no extracted text.")
        self._dispatcher.submit(
            document_id,
            partial(self._comparison.run, document_id, list(target_ids), source.owner_id),
        )

    def clear_compare(self, document_id: str, requester_id: str) -> DocumentRecord:
        self._authorized(document_id, requester_id)
        updated = self._writer.commit(document_id, _clear_comparison)
        if updated is None:
            raise NotFoundError(f"Document {document_id} not found")
        return updated

    def delete(self, document_id: str, requester_id: str) -> None:
        record = self._authorized(document_id, requester_id)
        self._orchestrator.forget(document_id)
        if not self._writer.remove(document_id):
            raise NotFoundError(f"Document {document_id} not found")
        try:
            self._file_store.delete(record.storage_key)
        except (StorageError, OSError) as exc:
            Log.error(f"Failed to delete stored file {record.storage_key}: {exc}")
        Log.info(f"Document {document_id} deleted by {requester_id}")

    def get(self, document_id: str, requester_id: str) -> DocumentRecord:
        return self._authorized(document_id, requester_id)

    def list_documents(
        self, owner_id: str, document_filter: DocumentFilter | None = None
    ) -> DocumentPage:
        document_filter = document_filter or DocumentFilter()
        try:
            validate_filter(document_filter)
        except ValueError as exc:
            raise ValidationError(str(exc)) from exc
        return self._repository.list(owner_id, document_filter)

    def stats(self, owner_id: str) -> DocumentStats:
        if not owner_id:
            raise ValidationError("An owner is required.")
        return self._repository.stats(owner_id)

    def summarize(self, document_id: str, requester_id: str) -> str:
        record = self._authorized(document_id, requester_id)
        if not record.extracted_text:
            raise ValidationError("Document has no extracted text to summarize.")
        return self._summary_of(record)

    def ask(self, document_id: str, requester_id: str, question: str) -> str:
        if not isinstance(question, str) or not question.strip():
            raise ValidationError("A question is required.")
        record = self._authorized(document_id, requester_id)
        if not record.extracted_text:
            raise ValidationError("Document has no extracted text to answer from.")
        try:
            return self._providers.question_answerer.answer(
                bounded(record.extracted_text, QUESTION_CHARS), question.strip()
            )
        except ProviderError as exc:
            Log.error(f"Question answering failed for document {document_id}: {exc}")
            return ANSWER_UNAVAILABLE

    def export_text(self, document_id: str, requester_id: str, fmt: str = "txt") -> ExportedFile:
        record = self._authorized(document_id, requester_id)
        if fmt not in exports.EXPORT_FORMATS:
            raise ValidationError(f"Unsupported export format '{fmt}'.")
        if not record.extracted_text:
            raise ValidationError("Document has no extracted text to export.")
        return exports.export_text(record, fmt)

    def report(self, document_id: str, requester_id: str) -> bytes:
        record = self._authorized(document_id, requester_id)
        if record.status in _UNANALYZED_STATUSES:
            raise ValidationError("Document has not been analyzed yet.")
        summary = self._summary_of(record) if record.extracted_text else SUMMARY_UNAVAILABLE
        return exports.render_report(record, summary)

    def _summary_of(self, record: DocumentRecord) -> str:
        try:
            return self._providers.summarizer.summarize(bounded(record.extracted_text, SUMMARY_CHARS))
        except ProviderError as exc:
            Log.error(f"Summary failed for document {record.id}: {exc}")
            return SUMMARY_UNAVAILABLE

    def _authorized(self, document_id: str, requester_id: str) -> DocumentRecord:
        record = self._repository.get(document_id)
        if record is None:
            raise NotFoundError(f"Document {document_id} not found")
        if record.owner_id != requester_id:
            raise AuthorizationError(f"Document {document_id} belongs to another user")
        return record


def _clear_comparison(record: DocumentRecord) -> None:
    record.comparison_results = []


@dataclass
class Runtime:
    """A wired service plus the parts callers need to observe or stop it."""

    service: DocumentService
    dispatcher: SerialDispatcher
    publisher: BaseEventPublisher


def build_service(
    settings: Settings,
    *,
    files_root: Path | None = None,
    repository: BaseDocumentRepository | None = None,
    publisher: BaseEventPublisher | None = None,
    providers: CapabilityProviders | None = None,
    owners: BaseOwnerDirectory | None = None,
) -> Runtime:
    """Build a DocumentService with all required adapters."""
    repository = repository or RepositoryFactory.create(settings)
    publisher = publisher or EventPublisherFactory.create(settings)
    providers = providers or AnalysisFactory.create(settings)
    if owners is None:
        owners = (
            PostgresOwnerDirectory()
            if settings.record_store.lower() == "postgres"
            else StaticOwnerDirectory()
        )
    file_store = FileStore(files_root or Path(settings.files_root))
    notifier = SmtpNotifier(
        host=settings.smtp_host,
        port=settings.smtp_port,
        username=settings.smtp_username,
        password=settings.smtp_password,
        sender_name=settings.smtp_sender_name,
        use_tls=settings.smtp_use_tls,
    )

    writer = RecordWriter(repository, publisher)
    dispatcher = SerialDispatcher(settings.pipeline_max_workers)
    stages = [
        ExtractionStage(file_store, ExtractorFactory.create(settings)),
        ClassificationStage(providers.classifier),
        StructuredDataStage(providers.structured_extractor),
        SentimentStage(providers.sentiment_analyzer),
        RenameStage(RenameSynthesizer()),
        RoutingStage(RoutingResolver(), notifier, owners),
    ]
    orchestrator = Orchestrator(
        repository=repository,
        writer=writer,
        dispatcher=dispatcher,
        stages=stages,
    )
    comparison = ComparisonRunner(
        repository=repository,
        writer=writer,
        comparator=providers.comparator,
        max_workers=settings.comparison_max_workers,
    )
    service = DocumentService(
        repository=repository,
        writer=writer,
        orchestrator=orchestrator,
        dispatcher=dispatcher,
        comparison=comparison,
        file_store=file_store,
        providers=providers,
    )
    return Runtime(service=service, dispatcher=dispatcher, publisher=publisher)

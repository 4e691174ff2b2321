import itertools
import threading
from functools import partial

from docflow.database.models import DocumentRecord, DocumentStatus
from docflow.database.repositories.base import BaseDocumentRepository
from docflow.logging.logger import Log
from docflow.pipeline.stages import PipelineStage, StageResult
from docflow.pipeline.state import ensure_transition
from docflow.pipeline.writer import RecordWriter
from docflow.worker.dispatcher import SerialDispatcher

EXTRACTION = "extraction"
CLASSIFICATION = "classification"


class Orchestrator:
    """Drives each document through the forward stage chain.

    Every trigger (upload, re-extract, re-classify) advances the document's
    generation and queues an entry task on the document's dispatcher lane. A
    finished stage queues the next one tagged with the same generation; that
    continuation is dropped if a newer trigger has happened meanwhile, so an
    abandoned chain never overwrites the state of a newer one. Generation
    numbers are never reused; a chain that ends unsuperseded drops its entry.
    """

    def __init__(
        self,
        *,
        repository: BaseDocumentRepository,
        writer: RecordWriter,
        dispatcher: SerialDispatcher,
        stages: list[PipelineStage],
    ) -> None:
        self._repository = repository
        self._writer = writer
        self._dispatcher = dispatcher
        self._stages = stages
        self._positions = {stage.name: index for index, stage in enumerate(stages)}
        self._generations: dict[str, int] = {}
        self._counter = itertools.count(1)
        self._lock = threading.Lock()

    def trigger(self, document_id: str, stage_name: str) -> None:
        """Schedule the chain from the named stage and return immediately."""
        position = self._positions.get(stage_name)
        if position is None:
            raise ValueError(f"Unknown pipeline stage '{stage_name}'. Choose from: {list(self._positions)}")
        generation = self._advance(document_id)
        self._dispatcher.submit(
            document_id, partial(self._run, position, document_id, generation, True)
        )

    def forget(self, document_id: str) -> None:
        """Invalidate queued continuations of a document about to be deleted."""
        with self._lock:
            self._generations.pop(document_id, None)

    def generation(self, document_id: str) -> int:
        with self._lock:
            return self._generations.get(document_id, 0)

    def _advance(self, document_id: str) -> int:
        with self._lock:
            generation = next(self._counter)
            self._generations[document_id] = generation
            return generation

    def _run(self, position: int, document_id: str, generation: int, entry: bool) -> None:
        stage = self._stages[position]
        if not entry and generation != self.generation(document_id):
            Log.info(f"Skipping superseded {stage.name} for document {document_id}")
            return
        try:
            proceed = self._execute(position, document_id)
        except Exception:
            self._settle(document_id, generation)
            raise
        if proceed and position + 1 < len(self._stages):
            self._dispatcher.submit(
                document_id, partial(self._run, position + 1, document_id, generation, False)
            )
            return
        self._settle(document_id, generation)

    def _settle(self, document_id: str, generation: int) -> None:
        """Drop the generation entry of a chain that ended without being superseded."""
        with self._lock:
            if self._generations.get(document_id) == generation:
                del self._generations[document_id]

    def _execute(self, position: int, document_id: str) -> bool:
        """Run one stage. Returns True when the chain should continue."""
        stage = self._stages[position]
        record = self._repository.get(document_id)
        if record is None:
            Log.info(f"Document {document_id} no longer exists, abandoning {stage.name}")
            return False
        if stage.requires_text and not record.extracted_text:
            return False

        pending = self._writer.commit(document_id, partial(self._begin, position))
        if pending is None:
            return False
        Log.info(f"Running {stage.name} for document {document_id}")

        try:
            result = stage.run(pending)
        except Exception as exc:
            result = stage.recover(pending, exc)
            if result is None:
                Log.error(f"{stage.name} failed for document {document_id}: {exc}")
                self._writer.commit(document_id, partial(self._fail, stage, exc))
                return False
            Log.warning(f"{stage.name} recovered for document {document_id}: {exc}")

        done = self._writer.commit(document_id, partial(self._complete, stage, result))
        if done is None:
            return False
        try:
            stage.after_commit(done)
        except Exception as exc:
            Log.warning(f"Post-{stage.name} hook failed for document {document_id}: {exc}")
        return True

    def _begin(self, position: int, record: DocumentRecord) -> None:
        stage = self._stages[position]
        ensure_transition(record.status, stage.pending)
        record.status = stage.pending
        for owned in self._stages[position:]:
            owned.clear(record)
        record.append_log(stage.start_message)

    @staticmethod
    def _complete(stage: PipelineStage, result: StageResult, record: DocumentRecord) -> None:
        ensure_transition(record.status, stage.done)
        if result.apply is not None:
            result.apply(record)
        record.status = stage.done
        record.append_log(result.message)

    @staticmethod
    def _fail(stage: PipelineStage, exc: Exception, record: DocumentRecord) -> None:
        ensure_transition(record.status, DocumentStatus.FAILED)
        record.status = DocumentStatus.FAILED
        record.append_log(f"{stage.error_label} Error: {exc}")

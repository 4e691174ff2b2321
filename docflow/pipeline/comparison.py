from concurrent.futures import ThreadPoolExecutor
from functools import partial

from docflow.analysis.base import BaseComparator
from docflow.analysis.limits import COMPARISON_CHARS, bounded
from docflow.analysis.parsing import clamp_percentage
from docflow.database.models import ComparisonResult, DocumentRecord
from docflow.database.repositories.base import BaseDocumentRepository
from docflow.logging.logger import Log
from docflow.pipeline.writer import RecordWriter


class ComparisonRunner:
    """Scores one source document against a set of the owner's documents.

    Runs as a task on the source document's dispatcher lane. Provider calls
    for the targets fan out over a bounded pool; results keep the requested
    order. The source status is never touched.
    """

    def __init__(
        self,
        *,
        repository: BaseDocumentRepository,
        writer: RecordWriter,
        comparator: BaseComparator,
        max_workers: int,
    ) -> None:
        self._repository = repository
        self._writer = writer
        self._comparator = comparator
        self._max_workers = max(1, max_workers)

    def run(self, source_id: str, target_ids: list[str], owner_id: str) -> DocumentRecord | None:
        source = self._repository.get(source_id)
        if source is None:
            Log.info(f"Document {source_id} no longer exists, comparison dropped")
            return None

        targets = self._eligible_targets(source, target_ids, owner_id)
        started = self._writer.commit(
            source_id,
            lambda record: record.append_log(f"Comparing with {len(targets)} document(s)..."),
        )
        if started is None:
            return None

        results = self._score_all(bounded(started.extracted_text, COMPARISON_CHARS), targets)
        Log.info(f"Compared document {source_id} with {len(results)} target(s)")
        return self._writer.commit(source_id, partial(_store_results, results))

    def _eligible_targets(
        self, source: DocumentRecord, target_ids: list[str], owner_id: str
    ) -> list[DocumentRecord]:
        if not source.extracted_text:
            return []
        requested = [target_id for target_id in dict.fromkeys(target_ids) if target_id != source.id]
        loaded = {record.id: record for record in self._repository.get_many(requested, owner_id)}
        return [
            loaded[target_id]
            for target_id in requested
            if target_id in loaded and loaded[target_id].extracted_text
        ]

    def _score_all(self, source_text: str, targets: list[DocumentRecord]) -> list[ComparisonResult]:
        if not targets:
            return []
        workers = min(self._max_workers, len(targets))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="docflow-compare") as pool:
            scores = list(pool.map(partial(self._score, source_text), targets))
        return [
            ComparisonResult(
                target_id=target.id,
                target_name=target.original_display_name,
                score=score,
            )
            for target, score in zip(targets, scores)
        ]

    def _score(self, source_text: str, target: DocumentRecord) -> int:
        try:
            score = self._comparator.compare(
                source_text, bounded(target.extracted_text, COMPARISON_CHARS)
            )
        except Exception as exc:
            Log.warning(f"Comparison with document {target.id} failed, scoring 0: {exc}")
            return 0
        if isinstance(score, bool) or not isinstance(score, int):
            return 0
        return clamp_percentage(score)


def _store_results(results: list[ComparisonResult], record: DocumentRecord) -> None:
    record.comparison_results = list(results)
    record.append_log("Comparison complete.")

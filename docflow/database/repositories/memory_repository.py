"""In-process document repository.

Useful for local development and tests. A single store lock makes every
atomic_update a true read-modify-write against the stored record.
"""

import copy
import threading
from collections import Counter

from docflow.database.filters import matches, needs_review, start_of_today, total_pages
from docflow.database.models import (
    DocumentFilter,
    DocumentPage,
    DocumentRecord,
    DocumentStats,
    utcnow,
)
from docflow.database.repositories.base import BaseDocumentRepository, Mutator


class MemoryDocumentRepository(BaseDocumentRepository):
    def __init__(self) -> None:
        self._records: dict[str, DocumentRecord] = {}
        self._lock = threading.Lock()

    def create(self, record: DocumentRecord) -> DocumentRecord:
        with self._lock:
            if record.id in self._records:
                raise ValueError(f"Document {record.id} already exists")
            self._records[record.id] = copy.deepcopy(record)
            return copy.deepcopy(record)

    def get(self, document_id: str) -> DocumentRecord | None:
        with self._lock:
            record = self._records.get(document_id)
            return copy.deepcopy(record) if record is not None else None

    def get_many(self, document_ids: list[str], owner_id: str) -> list[DocumentRecord]:
        with self._lock:
            found = [self._records.get(document_id) for document_id in document_ids]
            return [
                copy.deepcopy(record)
                for record in found
                if record is not None and record.owner_id == owner_id
            ]

    def atomic_update(self, document_id: str, mutator: Mutator) -> DocumentRecord | None:
        with self._lock:
            stored = self._records.get(document_id)
            if stored is None:
                return None
            working = copy.deepcopy(stored)
            mutator(working)
            working.updated_at = max(utcnow(), stored.updated_at)
            self._records[document_id] = working
            return copy.deepcopy(working)

    def delete(self, document_id: str) -> bool:
        with self._lock:
            return self._records.pop(document_id, None) is not None

    def list(self, owner_id: str, document_filter: DocumentFilter) -> DocumentPage:
        with self._lock:
            selected = [
                record
                for record in self._records.values()
                if record.owner_id == owner_id and matches(record, document_filter)
            ]
            selected.sort(
                key=lambda r: getattr(r, document_filter.sort_by),
                reverse=document_filter.sort_order == "desc",
            )
            start = (document_filter.page - 1) * document_filter.limit
            window = selected[start:start + document_filter.limit]
            return DocumentPage(
                documents=[copy.deepcopy(record) for record in window],
                page=document_filter.page,
                total_pages=total_pages(len(selected), document_filter.limit),
                total_documents=len(selected),
            )

    def stats(self, owner_id: str) -> DocumentStats:
        today = start_of_today()
        with self._lock:
            owned = [record for record in self._records.values() if record.owner_id == owner_id]
        return DocumentStats(
            total_documents=len(owned),
            needs_review=sum(1 for record in owned if needs_review(record)),
            processed_today=sum(1 for record in owned if record.created_at >= today),
            label_breakdown=dict(Counter(record.classification_label for record in owned)),
        )

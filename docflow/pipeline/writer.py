import threading
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from docflow.database.models import DocumentRecord
from docflow.database.repositories.base import BaseDocumentRepository, Mutator
from docflow.events.base import DOCUMENT_DELETED, DOCUMENT_UPDATED, BaseEventPublisher
from docflow.logging.logger import Log


class RecordWriter:
    """Single path for every record mutation.

    Each write holds a per-document lock around "atomic update, then publish",
    so observers receive a document's events in mutation order. A failed
    publish is logged and never undoes or halts the write; every event carries
    the full record, so the next one brings observers up to date.
    """

    def __init__(self, repository: BaseDocumentRepository, publisher: BaseEventPublisher) -> None:
        self._repository = repository
        self._publisher = publisher
        self._locks: dict[str, threading.Lock] = {}
        self._holders: dict[str, int] = {}
        self._guard = threading.Lock()

    def create(self, record: DocumentRecord) -> DocumentRecord:
        with self._locked(record.id):
            created = self._repository.create(record)
            self._publish(DOCUMENT_UPDATED, created.snapshot())
        return created

    def commit(self, document_id: str, mutator: Mutator) -> DocumentRecord | None:
        """Apply a mutation and publish the resulting snapshot.

        Returns None, without publishing, when the record no longer exists.
        """
        with self._locked(document_id):
            updated = self._repository.atomic_update(document_id, mutator)
            if updated is None:
                Log.info(f"Document {document_id} no longer exists, update dropped")
                return None
            self._publish(DOCUMENT_UPDATED, updated.snapshot())
        return updated

    def remove(self, document_id: str) -> bool:
        with self._locked(document_id):
            deleted = self._repository.delete(document_id)
            if deleted:
                self._publish(DOCUMENT_DELETED, {"id": document_id})
        return deleted

    def _publish(self, event_name: str, payload: dict[str, Any]) -> None:
        try:
            self._publisher.publish(event_name, payload)
        except Exception:
            Log.exception(f"Failed to publish {event_name} for document {payload.get('id')}")

    @contextmanager
    def _locked(self, document_id: str) -> Iterator[None]:
        with self._guard:
            lock = self._locks.get(document_id)
            if lock is None:
                lock = self._locks[document_id] = threading.Lock()
            self._holders[document_id] = self._holders.get(document_id, 0) + 1
        try:
            with lock:
                yield
        finally:
            with self._guard:
                remaining = self._holders[document_id] - 1
                if remaining:
                    self._holders[document_id] = remaining
                else:
                    del self._holders[document_id]
                    del self._locks[document_id]

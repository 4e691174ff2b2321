from abc import ABC, abstractmethod
from collections.abc import Callable

from docflow.database.models import DocumentFilter, DocumentPage, DocumentRecord, DocumentStats

Mutator = Callable[[DocumentRecord], None]


class BaseDocumentRepository(ABC):
    """Contract for durable per-document state."""

    @abstractmethod
    def create(self, record: DocumentRecord) -> DocumentRecord:
        """Persist a new record and return the stored copy."""

    @abstractmethod
    def get(self, document_id: str) -> DocumentRecord | None:
        """Return a fresh copy of the persisted record, or None."""

    @abstractmethod
    def get_many(self, document_ids: list[str], owner_id: str) -> list[DocumentRecord]:
        """Return the owner's records among document_ids, in the given order."""

    @abstractmethod
    def atomic_update(self, document_id: str, mutator: Mutator) -> DocumentRecord | None:
        """Read, mutate and write one record as a single atomic step.

        The mutator receives the persisted record (never a cached copy) and
        changes it in place. updated_at is bumped by the repository.

        Returns:
            The record as written, or None when no record has this ID.
        """

    @abstractmethod
    def delete(self, document_id: str) -> bool:
        """Remove a record. Returns False when it did not exist."""

    @abstractmethod
    def list(self, owner_id: str, document_filter: DocumentFilter) -> DocumentPage:
        """Page through one owner's records."""

    @abstractmethod
    def stats(self, owner_id: str) -> DocumentStats:
        """Count one owner's documents: total, needing review, created today, per label."""

from typing import ClassVar

from docflow.config.settings import Settings
from docflow.database.repositories.base import BaseDocumentRepository
from docflow.database.repositories.document_repository import DocumentRepository
from docflow.database.repositories.memory_repository import MemoryDocumentRepository


class RepositoryFactory:
    """Creates the record store selected by settings."""

    STORES: ClassVar[dict[str, type[BaseDocumentRepository]]] = {
        "postgres": DocumentRepository,
        "memory": MemoryDocumentRepository,
    }

    @classmethod
    def create(cls, settings: Settings) -> BaseDocumentRepository:
        store = settings.record_store.lower()
        repository_cls = cls.STORES.get(store)
        if repository_cls is None:
            raise ValueError(
                f"Unknown record store '{store}'. Choose from: {list(cls.STORES)}"
            )
        return repository_cls()

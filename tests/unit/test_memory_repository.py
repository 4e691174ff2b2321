from datetime import timedelta

import pytest

from docflow.database.models import DocumentFilter, DocumentRecord, DocumentStatus, utcnow
from docflow.database.repositories.memory_repository import MemoryDocumentRepository


def _make_record(
    document_id: str,
    owner_id: str = "user-1",
    name: str = "scan.pdf",
    label: str = "Unclassified",
    confidence: int = 0,
) -> DocumentRecord:
    return DocumentRecord(
        id=document_id,
        owner_id=owner_id,
        original_display_name=name,
        uploaded_display_name=name,
        storage_key=f"{owner_id}/doc-{document_id}.pdf",
        media_type="application/pdf",
        size_bytes=100,
        classification_label=label,
        classification_confidence=confidence,
    )


class TestCreateAndGet:
    def test_get_returns_copy(self) -> None:
        repo = MemoryDocumentRepository()
        repo.create(_make_record("a"))
        fetched = repo.get("a")
        assert fetched is not None
        fetched.status = DocumentStatus.FAILED
        assert repo.get("a").status is DocumentStatus.INGESTED  # type: ignore[union-attr]

    def test_get_missing_returns_none(self) -> None:
        assert MemoryDocumentRepository().get("missing") is None

    def test_duplicate_create_raises(self) -> None:
        repo = MemoryDocumentRepository()
        repo.create(_make_record("a"))
        with pytest.raises(ValueError, match="already exists"):
            repo.create(_make_record("a"))


class TestGetMany:
    def test_restricts_to_owner_and_keeps_order(self) -> None:
        repo = MemoryDocumentRepository()
        repo.create(_make_record("a"))
        repo.create(_make_record("b", owner_id="user-2"))
        repo.create(_make_record("c"))

        found = repo.get_many(["c", "b", "a", "zzz"], "user-1")

        assert [record.id for record in found] == ["c", "a"]


class TestAtomicUpdate:
    def test_applies_mutator_and_persists(self) -> None:
        repo = MemoryDocumentRepository()
        repo.create(_make_record("a"))

        def mutate(record: DocumentRecord) -> None:
            record.extracted_text = "hello"

        updated = repo.atomic_update("a", mutate)

        assert updated is not None
        assert updated.extracted_text == "hello"
        assert repo.get("a").extracted_text == "hello"  # type: ignore[union-attr]

    def test_missing_record_returns_none(self) -> None:
        repo = MemoryDocumentRepository()
        assert repo.atomic_update("missing", lambda record: None) is None

    def test_failed_mutator_leaves_record_untouched(self) -> None:
        repo = MemoryDocumentRepository()
        repo.create(_make_record("a"))

        def mutate(record: DocumentRecord) -> None:
            record.extracted_text = "partial"
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            repo.atomic_update("a", mutate)
        assert repo.get("a").extracted_text == ""  # type: ignore[union-attr]

    def test_updated_at_never_goes_backward(self) -> None:
        repo = MemoryDocumentRepository()
        record = _make_record("a")
        record.updated_at = utcnow() + timedelta(hours=1)
        repo.create(record)

        updated = repo.atomic_update("a", lambda r: None)

        assert updated is not None
        assert updated.updated_at == record.updated_at


class TestDelete:
    def test_delete_reports_presence(self) -> None:
        repo = MemoryDocumentRepository()
        repo.create(_make_record("a"))
        assert repo.delete("a") is True
        assert repo.delete("a") is False
        assert repo.get("a") is None


class TestList:
    def _seeded(self) -> MemoryDocumentRepository:
        repo = MemoryDocumentRepository()
        repo.create(_make_record("a", name="Invoice_Acme.pdf", label="Invoice", confidence=95))
        repo.create(_make_record("b", name="notes.txt", label="Other", confidence=90))
        repo.create(_make_record("c", name="contract.pdf", label="Contract", confidence=40))
        repo.create(_make_record("d", owner_id="user-2", name="invoice_other.pdf"))
        return repo

    def test_only_owner_documents(self) -> None:
        page = self._seeded().list("user-1", DocumentFilter())
        assert page.total_documents == 3
        assert {record.id for record in page.documents} == {"a", "b", "c"}

    def test_search_is_case_insensitive(self) -> None:
        page = self._seeded().list("user-1", DocumentFilter(search="INVOICE"))
        assert [record.id for record in page.documents] == ["a"]

    def test_needs_review_category(self) -> None:
        page = self._seeded().list("user-1", DocumentFilter(category="needsReview"))
        assert {record.id for record in page.documents} == {"b", "c"}

    def test_label_category(self) -> None:
        page = self._seeded().list("user-1", DocumentFilter(category="Contract"))
        assert [record.id for record in page.documents] == ["c"]

    def test_processed_today_category(self) -> None:
        page = self._seeded().list("user-1", DocumentFilter(category="processedToday"))
        assert page.total_documents == 3

    def test_sorts_and_paginates(self) -> None:
        document_filter = DocumentFilter(
            page=2, limit=2, sort_by="classification_confidence", sort_order="asc"
        )
        page = self._seeded().list("user-1", document_filter)
        assert [record.id for record in page.documents] == ["a"]
        assert page.page == 2
        assert page.total_pages == 2
        assert page.total_documents == 3


class TestStats:
    def test_counts_only_owner_documents(self) -> None:
        repo = MemoryDocumentRepository()
        repo.create(_make_record("a", label="Invoice", confidence=95))
        repo.create(_make_record("b", label="Other", confidence=90))
        repo.create(_make_record("c", label="Contract", confidence=40))
        old = _make_record("d", label="Invoice", confidence=80)
        old.created_at = utcnow() - timedelta(days=2)
        repo.create(old)
        repo.create(_make_record("e", owner_id="user-2", label="Invoice", confidence=99))

        stats = repo.stats("user-1")

        assert stats.total_documents == 4
        assert stats.needs_review == 2
        assert stats.processed_today == 3
        assert stats.label_breakdown == {"Invoice": 2, "Other": 1, "Contract": 1}

    def test_empty_owner(self) -> None:
        stats = MemoryDocumentRepository().stats("nobody")
        assert stats.total_documents == 0
        assert stats.label_breakdown == {}

"""Shared semantics of DocumentFilter for every repository backend."""

import math
from datetime import datetime

from docflow.database.models import UNCLASSIFIED, DocumentFilter, DocumentRecord

NEEDS_REVIEW = "needsReview"
PROCESSED_TODAY = "processedToday"
NEEDS_REVIEW_LABELS = (UNCLASSIFIED, "Other")
NEEDS_REVIEW_CONFIDENCE = 70

SORTABLE_FIELDS = frozenset({
    "created_at",
    "updated_at",
    "original_display_name",
    "classification_confidence",
    "size_bytes",
    "status",
})

MAX_PAGE_SIZE = 100


def validate_filter(document_filter: DocumentFilter) -> None:
    """Raise ValueError for options no backend can honour."""
    if document_filter.page < 1:
        raise ValueError("page must be >= 1")
    if not 1 <= document_filter.limit <= MAX_PAGE_SIZE:
        raise ValueError(f"limit must be between 1 and {MAX_PAGE_SIZE}")
    if document_filter.sort_by not in SORTABLE_FIELDS:
        raise ValueError(
            f"Cannot sort by '{document_filter.sort_by}'. Choose from: {sorted(SORTABLE_FIELDS)}"
        )
    if document_filter.sort_order not in ("asc", "desc"):
        raise ValueError("sort_order must be 'asc' or 'desc'")


def start_of_today() -> datetime:
    """Local midnight as an aware datetime."""
    now = datetime.now().astimezone()
    return now.replace(hour=0, minute=0, second=0, microsecond=0)


def needs_review(record: DocumentRecord) -> bool:
    return (
        record.classification_label in NEEDS_REVIEW_LABELS
        or record.classification_confidence < NEEDS_REVIEW_CONFIDENCE
    )


def matches(record: DocumentRecord, document_filter: DocumentFilter) -> bool:
    if document_filter.search:
        if document_filter.search.lower() not in record.original_display_name.lower():
            return False
    category = document_filter.category
    if not category or category == "all":
        return True
    if category == NEEDS_REVIEW:
        return needs_review(record)
    if category == PROCESSED_TODAY:
        return record.created_at >= start_of_today()
    return record.classification_label == category


def total_pages(total: int, limit: int) -> int:
    return math.ceil(total / limit) if total else 0

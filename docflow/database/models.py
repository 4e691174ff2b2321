from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class DocumentStatus(str, Enum):
    """Pipeline states. Declaration order of the forward path is significant."""

    INGESTED = "Ingested"
    EXTRACTION_PENDING = "Extraction_Pending"
    EXTRACTED = "Extracted"
    CLASSIFICATION_PENDING = "Classification_Pending"
    CLASSIFIED = "Classified"
    DATA_EXTRACTION_PENDING = "Data_Extraction_Pending"
    DATA_EXTRACTED = "Data_Extracted"
    SENTIMENT_PENDING = "Sentiment_Pending"
    ANALYZED = "Analyzed"
    RENAMING_PENDING = "Renaming_Pending"
    RENAMED = "Renamed"
    ROUTING_PENDING = "Routing_Pending"
    ROUTED = "Routed"
    FAILED = "Failed"

    @property
    def is_terminal(self) -> bool:
        return self in (DocumentStatus.ROUTED, DocumentStatus.FAILED)

    @property
    def is_pending(self) -> bool:
        return self.value.endswith("_Pending")


FORWARD_ORDER: tuple[DocumentStatus, ...] = tuple(
    status for status in DocumentStatus if status is not DocumentStatus.FAILED
)


class Sentiment(str, Enum):
    POSITIVE = "Positive"
    NEGATIVE = "Negative"
    NEUTRAL = "Neutral"
    NOT_AVAILABLE = "NotAvailable"


UNCLASSIFIED = "Unclassified"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class LogEntry:
    """One line of a document's audit trail."""

    timestamp: datetime
    message: str


@dataclass
class ComparisonResult:
    """Similarity of the source document against one target."""

    target_id: str
    target_name: str
    score: int


@dataclass
class DocumentRecord:
    """Persisted processing state and accumulated results of one document."""

    id: str
    owner_id: str
    original_display_name: str
    uploaded_display_name: str
    storage_key: str
    media_type: str
    size_bytes: int
    status: DocumentStatus = DocumentStatus.INGESTED
    extracted_text: str = ""
    classification_label: str = UNCLASSIFIED
    classification_confidence: int = 0
    structured_data: dict[str, str] = field(default_factory=dict)
    sentiment: Sentiment = Sentiment.NOT_AVAILABLE
    route_destination: str | None = None
    logs: list[LogEntry] = field(default_factory=list)
    comparison_results: list[ComparisonResult] = field(default_factory=list)
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    def append_log(self, message: str, now: datetime | None = None) -> LogEntry:
        """Append an audit line; timestamps never go backward."""
        timestamp = now or utcnow()
        if self.logs and timestamp < self.logs[-1].timestamp:
            timestamp = self.logs[-1].timestamp
        entry = LogEntry(timestamp=timestamp, message=message)
        self.logs.append(entry)
        return entry

    def snapshot(self) -> dict[str, Any]:
        """JSON-ready representation published with update events."""
        data = asdict(self)
        data["status"] = self.status.value
        data["sentiment"] = self.sentiment.value
        data["created_at"] = self.created_at.isoformat()
        data["updated_at"] = self.updated_at.isoformat()
        data["logs"] = [
            {"timestamp": entry.timestamp.isoformat(), "message": entry.message}
            for entry in self.logs
        ]
        return data


@dataclass
class Owner:
    """Notification details of a document owner."""

    id: str
    email: str
    username: str


@dataclass
class DocumentFilter:
    """Listing options for one owner's documents."""

    page: int = 1
    limit: int = 10
    search: str | None = None
    category: str = "all"
    sort_by: str = "created_at"
    sort_order: str = "desc"


@dataclass
class DocumentPage:
    documents: list[DocumentRecord]
    page: int
    total_pages: int
    total_documents: int


@dataclass
class DocumentStats:
    """Dashboard counters over one owner's documents."""

    total_documents: int = 0
    needs_review: int = 0
    processed_today: int = 0
    label_breakdown: dict[str, int] = field(default_factory=dict)

from abc import ABC, abstractmethod
from typing import Any

DOCUMENT_UPDATED = "document_updated"
DOCUMENT_DELETED = "document_deleted"


class BaseEventPublisher(ABC):
    """Contract for broadcasting document state changes to observers."""

    @abstractmethod
    def publish(self, event_name: str, payload: dict[str, Any]) -> None:
        """Deliver one event. Payloads carry an ``id`` key naming the document."""

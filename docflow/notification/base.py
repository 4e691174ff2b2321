from abc import ABC, abstractmethod

from docflow.database.models import Owner


class BaseNotifier(ABC):
    """Contract for best-effort outbound notifications."""

    @abstractmethod
    def notify(self, address: str, subject: str, body: str) -> None:
        """Send a notification. Never raises; failures are logged here."""


class BaseOwnerDirectory(ABC):
    """Resolves a document owner's notification details."""

    @abstractmethod
    def find(self, owner_id: str) -> Owner | None: ...

from abc import ABC, abstractmethod


class BaseTextExtractor(ABC):
    """Contract for all text extraction adapters."""

    @abstractmethod
    def extract(self, content: bytes) -> str:
        """Extract plain text from raw file content.

        Args:
            content: Raw file bytes as stored at upload.

        Returns:
            Extracted text as a single string.

        Raises:
            ExtractionError: if extraction fails for any reason.
        """

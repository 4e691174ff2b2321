import io

import pdfplumber

from docflow.extraction.base import BaseTextExtractor
from docflow.extraction.exceptions import ExtractionError


class PdfPlumberAdapter(BaseTextExtractor):
    """Reads the PDF text layer with pdfplumber."""

    def extract(self, content: bytes) -> str:
        try:
            with pdfplumber.open(io.BytesIO(content)) as pdf:
                pages = [page.extract_text() or "" for page in pdf.pages]
        except Exception as exc:
            raise ExtractionError(f"pdfplumber extraction failed: {exc}") from exc
        return "\n".join(pages).strip()

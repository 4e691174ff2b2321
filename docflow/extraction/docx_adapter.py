import io
import zipfile

import docx

from docflow.extraction.base import BaseTextExtractor
from docflow.extraction.exceptions import ExtractionError


class DocxAdapter(BaseTextExtractor):
    """Reads paragraph text from word-processing documents with python-docx."""

    def extract(self, content: bytes) -> str:
        try:
            document = docx.Document(io.BytesIO(content))
        except (zipfile.BadZipFile, KeyError, ValueError) as exc:
            raise ExtractionError(f"Unreadable word document: {exc}") from exc
        return "\n".join(p.text for p in document.paragraphs if p.text.strip())

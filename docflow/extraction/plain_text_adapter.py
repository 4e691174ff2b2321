from docflow.extraction.base import BaseTextExtractor


class PlainTextAdapter(BaseTextExtractor):
    """Decodes raw bytes as UTF-8, falling back to Latin-1."""

    def extract(self, content: bytes) -> str:
        try:
            return content.decode("utf-8")
        except UnicodeDecodeError:
            return content.decode("latin-1", errors="replace")

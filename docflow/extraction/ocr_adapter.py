import io

import pytesseract
from PIL import Image, UnidentifiedImageError

from docflow.extraction.base import BaseTextExtractor
from docflow.extraction.exceptions import ExtractionError


class TesseractOcrAdapter(BaseTextExtractor):
    """Recognizes text in raster images with Tesseract."""

    def __init__(self, language: str = "eng") -> None:
        self._language = language

    def extract(self, content: bytes) -> str:
        try:
            with Image.open(io.BytesIO(content)) as image:
                text = pytesseract.image_to_string(image, lang=self._language)
        except UnidentifiedImageError as exc:
            raise ExtractionError(f"Unreadable image: {exc}") from exc
        except pytesseract.TesseractError as exc:
            raise ExtractionError(f"OCR failed: {exc}") from exc
        except pytesseract.TesseractNotFoundError as exc:
            raise ExtractionError("Tesseract is not installed") from exc
        return text.strip()

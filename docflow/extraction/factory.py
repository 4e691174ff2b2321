from docflow.config.settings import Settings
from docflow.extraction.base import BaseTextExtractor
from docflow.extraction.docx_adapter import DocxAdapter
from docflow.extraction.ocr_adapter import TesseractOcrAdapter
from docflow.extraction.pdfplumber_adapter import PdfPlumberAdapter
from docflow.extraction.plain_text_adapter import PlainTextAdapter
from docflow.extraction.pymupdf_adapter import PyMuPdfAdapter
from docflow.extraction.registry import ExtractorRegistry


class ExtractorFactory:
    """Builds the media-type registry with the configured PDF engine."""

    PDF_ADAPTERS: dict[str, type[BaseTextExtractor]] = {
        "pdfplumber": PdfPlumberAdapter,
        "pymupdf": PyMuPdfAdapter,
    }

    @classmethod
    def create(cls, settings: Settings) -> ExtractorRegistry:
        engine = settings.pdf_engine.lower()
        pdf_cls = cls.PDF_ADAPTERS.get(engine)
        if pdf_cls is None:
            raise ValueError(
                f"Unknown PDF engine '{engine}'. Choose from: {list(cls.PDF_ADAPTERS)}"
            )
        return ExtractorRegistry(
            pdf=pdf_cls(),
            image=TesseractOcrAdapter(language=settings.ocr_language),
            word_processing=DocxAdapter(),
            fallback=PlainTextAdapter(),
        )

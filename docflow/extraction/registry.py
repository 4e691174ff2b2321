from docflow.extraction.base import BaseTextExtractor

WORD_PROCESSING_MEDIA_TYPES = frozenset({
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
})


class ExtractorRegistry:
    """Selects the text extractor for a document's media type.

    image/* goes to OCR, application/pdf to the PDF text layer, word-processing
    documents to the document reader, anything else to a raw byte decode.
    """

    def __init__(
        self,
        *,
        pdf: BaseTextExtractor,
        image: BaseTextExtractor,
        word_processing: BaseTextExtractor,
        fallback: BaseTextExtractor,
    ) -> None:
        self._pdf = pdf
        self._image = image
        self._word_processing = word_processing
        self._fallback = fallback

    def for_media_type(self, media_type: str) -> BaseTextExtractor:
        normalized = media_type.split(";", 1)[0].strip().lower()
        if normalized.startswith("image/"):
            return self._image
        if normalized == "application/pdf":
            return self._pdf
        if normalized in WORD_PROCESSING_MEDIA_TYPES or "wordprocessingml" in normalized:
            return self._word_processing
        return self._fallback

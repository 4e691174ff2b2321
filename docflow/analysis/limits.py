"""Input ceilings for text handed to capability providers."""

CLASSIFICATION_CHARS = 4_000
STRUCTURED_EXTRACTION_CHARS = 4_000
SENTIMENT_CHARS = 4_000
SUMMARY_CHARS = 8_000
QUESTION_CHARS = 12_000
COMPARISON_CHARS = 2_000


def bounded(text: str, limit: int) -> str:
    return text[:limit]

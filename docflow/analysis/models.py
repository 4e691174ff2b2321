from dataclasses import dataclass

from docflow.analysis.base import (
    BaseClassifier,
    BaseComparator,
    BaseQuestionAnswerer,
    BaseSentimentAnalyzer,
    BaseStructuredExtractor,
    BaseSummarizer,
)


@dataclass(frozen=True)
class Classification:
    """Classifier output: a label and a 0-100 confidence."""

    label: str
    confidence: int


@dataclass(frozen=True)
class CapabilityProviders:
    """The set of text-analysis capabilities the pipeline depends on."""

    classifier: BaseClassifier
    structured_extractor: BaseStructuredExtractor
    sentiment_analyzer: BaseSentimentAnalyzer
    summarizer: BaseSummarizer
    comparator: BaseComparator
    question_answerer: BaseQuestionAnswerer

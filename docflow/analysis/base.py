"""Contracts for the capability providers used by the pipeline.

Every method may raise ProviderError on failure. Callers are responsible for
bounding the text they pass in (see docflow.analysis.limits).
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from docflow.analysis.models import Classification


class BaseClassifier(ABC):
    @abstractmethod
    def classify(self, text: str) -> Classification:
        """Return a label and confidence; Unclassified/0 when undecidable."""


class BaseStructuredExtractor(ABC):
    @abstractmethod
    def extract(self, text: str, label: str, fields: tuple[str, ...]) -> dict[str, str]:
        """Return a mapping of the requested fields for a document of this label."""


class BaseSentimentAnalyzer(ABC):
    @abstractmethod
    def analyze(self, text: str) -> str:
        """Return one of Positive, Negative, Neutral (unconstrained raw answer)."""


class BaseSummarizer(ABC):
    @abstractmethod
    def summarize(self, text: str) -> str: ...


class BaseComparator(ABC):
    @abstractmethod
    def compare(self, text_a: str, text_b: str) -> int:
        """Return semantic similarity as an integer 0-100."""


class BaseQuestionAnswerer(ABC):
    @abstractmethod
    def answer(self, text: str, question: str) -> str: ...

from docflow.analysis.exceptions import ProviderError
from docflow.analysis.factory import AnalysisFactory
from docflow.analysis.models import CapabilityProviders, Classification

__all__ = ["AnalysisFactory", "CapabilityProviders", "Classification", "ProviderError"]

class ProviderError(Exception):
    """Raised when a capability provider fails."""


class ProviderNetworkError(ProviderError):
    """Raised when the AI provider call fails due to network/infrastructure issues."""


class ProviderResponseError(ProviderError):
    """Raised when the AI provider answers with something unusable."""

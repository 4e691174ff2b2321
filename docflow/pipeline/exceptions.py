class PipelineError(Exception):
    """Base exception for pipeline state machine errors."""


class InvalidTransitionError(PipelineError):
    """Raised when a status change would break the forward order."""

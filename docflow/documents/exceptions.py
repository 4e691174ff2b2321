class DocumentServiceError(Exception):
    """Base exception for document service errors."""


class NotFoundError(DocumentServiceError):
    """Raised when a document does not exist."""


class AuthorizationError(DocumentServiceError):
    """Raised when the requester does not own the document."""


class ValidationError(DocumentServiceError):
    """Raised when a request is malformed or not allowed in the current state."""

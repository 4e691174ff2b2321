from dataclasses import dataclass


@dataclass(frozen=True)
class UploadedFile:
    """A file handed to the service by the upload surface."""

    filename: str
    media_type: str
    content: bytes


@dataclass(frozen=True)
class ExportedFile:
    filename: str
    media_type: str
    content: bytes

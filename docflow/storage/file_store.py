import uuid
from pathlib import Path, PurePath

from docflow.storage.exceptions import BlobNotFoundError, InvalidStorageKeyError


class FileStore:
    """Stores uploaded blobs under a local files root, one directory per owner.

    Storage keys look like ``{owner_id}/doc-{uuid}{ext}`` and never change once
    assigned; renaming a document only touches its display name.
    """

    def __init__(self, files_root: Path) -> None:
        self._files_root = files_root

    def save(self, owner_id: str, filename: str, content: bytes) -> str:
        key = f"{owner_id}/doc-{uuid.uuid4().hex}{PurePath(filename).suffix.lower()}"
        path = self._resolve(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)
        return key

    def load(self, storage_key: str) -> bytes:
        """Read blob bytes.

        Raises:
            BlobNotFoundError: if nothing is stored under the key.
        """
        path = self._resolve(storage_key)
        if not path.exists():
            raise BlobNotFoundError(f"File not found: {path}")
        return path.read_bytes()

    def delete(self, storage_key: str) -> None:
        self._resolve(storage_key).unlink(missing_ok=True)

    def _resolve(self, storage_key: str) -> Path:
        root = self._files_root.resolve()
        path = (root / storage_key).resolve()
        if root not in path.parents:
            raise InvalidStorageKeyError(f"Storage key escapes files root: {storage_key}")
        return path

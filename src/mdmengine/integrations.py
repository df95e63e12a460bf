"""Contracts for external collaborators and a local attachment store.

The engine only stores references for ATTACHMENT, USER and MULTI_USER
values; the blobs and the user directory live elsewhere.
"""

import logging
import re
import uuid
from pathlib import Path
from typing import Any, Dict, List, Protocol, runtime_checkable

logger = logging.getLogger(__name__)

_UNSAFE_FILENAME = re.compile(r"[^A-Za-z0-9._-]+")


@runtime_checkable
class StorageProvider(Protocol):
    """Blob storage used for ATTACHMENT values."""

    def upload(self, filename: str, content: bytes) -> str:
        """Store ``content`` and return an opaque reference."""
        ...

    def download(self, reference: str) -> bytes:
        ...

    def delete(self, reference: str) -> None:
        ...


@runtime_checkable
class UserDirectory(Protocol):
    """Directory of users that USER and MULTI_USER values point at."""

    def list_users(self, space_id: str) -> List[Dict[str, Any]]:
        """Return ``[{id, name, email, role}]`` for members of a space."""
        ...


class LocalFileStorage:
    """StorageProvider keeping attachments in a project directory.

    References have the form ``<uuid>/<sanitized filename>``.
    """

    def __init__(self, root: Path):
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)

    def _path(self, reference: str) -> Path:
        path = (self.root / reference).resolve()
        if self.root.resolve() not in path.parents:
            raise ValueError(f"Invalid attachment reference '{reference}'")
        return path

    def upload(self, filename: str, content: bytes) -> str:
        safe_name = _UNSAFE_FILENAME.sub("_", Path(filename).name).strip("._") or "file"
        reference = f"{uuid.uuid4()}/{safe_name}"
        path = self._path(reference)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)
        logger.debug(f"Stored attachment {reference} ({len(content)} bytes)")
        return reference

    def download(self, reference: str) -> bytes:
        path = self._path(reference)
        if not path.exists():
            raise FileNotFoundError(f"Attachment '{reference}' not found")
        return path.read_bytes()

    def delete(self, reference: str) -> None:
        path = self._path(reference)
        if path.exists():
            path.unlink()
        if path.parent != self.root.resolve() and path.parent.exists() and not any(path.parent.iterdir()):
            path.parent.rmdir()
        logger.debug(f"Deleted attachment {reference}")


class StaticUserDirectory:
    """UserDirectory backed by an in-memory mapping of space id to users."""

    def __init__(self, users_by_space: Dict[str, List[Dict[str, Any]]]):
        self.users_by_space = users_by_space

    def list_users(self, space_id: str) -> List[Dict[str, Any]]:
        return list(self.users_by_space.get(space_id, []))

"""
Content Storage - Blob Store for Uploaded Intake Files

Holds the bytes of uploaded files, addressed by path. Paths are scoped by
submission: {submission_id}/{upload_ms}-{filename}

Blobs are never overwritten: a put to an existing path fails.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Final, Iterable, Optional

from intake_core.submission.errors import StorageError, StorageWriteFailure


logger = logging.getLogger(__name__)


# =============================================================================
# Storage Configuration
# =============================================================================

DEFAULT_STORAGE_PATH: Final[str] = "data/intake-uploads"


# =============================================================================
# Content Store Interface
# =============================================================================


class ContentStore(ABC):
    """Blob storage keyed by path."""

    @abstractmethod
    def put(self, path: str, content: bytes, content_type: str) -> str:
        """
        Store a blob at path and return the stored path.

        Raises:
            StorageWriteFailure: If the blob cannot be written or the path
                is already taken
        """

    @abstractmethod
    def delete(self, paths: Iterable[str]) -> int:
        """
        Delete blobs by path.

        Returns:
            Number of blobs removed
        """


# =============================================================================
# Local Content Store
# =============================================================================


class LocalContentStore(ContentStore):
    """
    Filesystem content store.

    Blobs are written under {storage_root}/{path}.
    """

    def __init__(self, storage_root: Optional[str] = None):
        """
        Initialise content store.

        Args:
            storage_root: Root directory for blobs.
                         Defaults to data/intake-uploads.
        """
        self._storage_root = Path(storage_root or DEFAULT_STORAGE_PATH)
        self._storage_root.mkdir(parents=True, exist_ok=True)

    @property
    def storage_root(self) -> Path:
        """Get storage root path."""
        return self._storage_root

    def _resolve(self, path: str) -> Path:
        """Map a store path to a file under the root, refusing escapes."""
        root = self._storage_root.resolve()
        target = (root / path).resolve()
        if root not in target.parents:
            raise StorageError(f"Path escapes storage root: {path}")
        return target

    def put(self, path: str, content: bytes, content_type: str) -> str:
        try:
            target = self._resolve(path)
        except StorageError as e:
            raise StorageWriteFailure(str(e)) from e

        if target.exists():
            raise StorageWriteFailure(f"Blob already exists: {path}")

        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            # "xb" so a concurrent writer cannot be silently replaced
            with open(target, "xb") as handle:
                handle.write(content)
        except OSError as e:
            raise StorageWriteFailure(f"Could not write blob {path}: {e}") from e

        logger.debug("Stored %d bytes (%s) at %s", len(content), content_type, path)
        return path

    def read(self, path: str) -> Optional[bytes]:
        """
        Retrieve blob content by path.

        Returns:
            Blob bytes, or None if not found
        """
        target = self._resolve(path)
        if target.exists():
            return target.read_bytes()
        return None

    def exists(self, path: str) -> bool:
        return self._resolve(path).exists()

    def delete(self, paths: Iterable[str]) -> int:
        count = 0
        for path in paths:
            target = self._resolve(path)
            if target.exists():
                target.unlink()
                count += 1
                # Drop the submission directory once it is empty
                parent = target.parent
                if parent != self._storage_root.resolve() and not any(parent.iterdir()):
                    parent.rmdir()
        return count

    def list_paths(self, submission_id: str) -> list[str]:
        """List stored blob paths for a submission."""
        directory = self._resolve(submission_id)
        if not directory.exists():
            return []
        root = self._storage_root.resolve()
        return sorted(str(p.relative_to(root).as_posix()) for p in directory.rglob("*") if p.is_file())


# =============================================================================
# Singleton Instance
# =============================================================================

_storage_instance: Optional[LocalContentStore] = None


def get_content_store(storage_root: Optional[str] = None) -> LocalContentStore:
    """
    Get the local content store singleton.

    Args:
        storage_root: Optional custom storage root (only used on first call)

    Returns:
        LocalContentStore instance
    """
    global _storage_instance
    if _storage_instance is None:
        _storage_instance = LocalContentStore(storage_root)
    return _storage_instance


def reset_content_store() -> None:
    """Reset the singleton (for testing)."""
    global _storage_instance
    _storage_instance = None

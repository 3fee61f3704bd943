"""
Intake Repository - Row Storage for Submissions and File Metadata

Two tables:
- intakes: one row per submission, keyed by submission_id
- intake_files: one row per stored blob, referencing its submission

The JSON implementation keeps rows in memory with optional file persistence
for development. Production uses the Supabase implementation.
"""

from __future__ import annotations

import copy
import json
import logging
import threading
import uuid
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

from intake_core.submission.errors import StorageError, StorageWriteFailure
from intake_core.submission.schema import SubmissionStatus, utc_now


logger = logging.getLogger(__name__)


# =============================================================================
# Repository Interface
# =============================================================================


class IntakeRepository(ABC):
    """Row storage for intake submissions and their file metadata."""

    @abstractmethod
    def insert_submission(self, row: dict[str, Any]) -> dict[str, Any]:
        """
        Insert a submission row and return it as stored.

        Raises:
            StorageWriteFailure: If the row cannot be written, including
                when its submission_id already exists
        """

    @abstractmethod
    def insert_file(self, row: dict[str, Any]) -> dict[str, Any]:
        """
        Insert a file-metadata row and return it as stored.

        Raises:
            StorageWriteFailure: If the row cannot be written, including
                when it references an unknown submission
        """

    @abstractmethod
    def list_submissions(
        self,
        status: Optional[SubmissionStatus] = None,
        created_before: Optional[datetime] = None,
    ) -> list[dict[str, Any]]:
        """List submission rows, optionally filtered."""

    @abstractmethod
    def list_files(self, submission_id: str) -> list[dict[str, Any]]:
        """List file rows belonging to a submission."""

    @abstractmethod
    def delete_submission(self, submission_id: str) -> int:
        """
        Delete a submission row and its file rows.

        Returns:
            Number of file rows deleted
        """


# =============================================================================
# JSON Repository
# =============================================================================


class JsonIntakeRepository(IntakeRepository):
    """
    In-memory repository with optional JSON-file persistence.

    Enforces the constraints a database would: unique submission IDs and
    file rows that reference an existing submission.
    """

    def __init__(self, persist_path: Optional[str] = None):
        """
        Initialise repository.

        Args:
            persist_path: Optional path to persist data to JSON file
        """
        self._submissions: dict[str, dict[str, Any]] = {}
        self._files: list[dict[str, Any]] = []
        self._persist_path = Path(persist_path) if persist_path else None
        self._lock = threading.Lock()

        if self._persist_path and self._persist_path.exists():
            self._load_from_file()

    def _save_to_file(self) -> None:
        """Persist data to file."""
        if not self._persist_path:
            return

        data = {
            "intakes": self._submissions,
            "intake_files": self._files,
            "saved_at": utc_now().isoformat(),
        }

        try:
            self._persist_path.parent.mkdir(parents=True, exist_ok=True)
            self._persist_path.write_text(json.dumps(data, indent=2))
        except OSError as e:
            raise StorageWriteFailure(f"Could not persist intake data: {e}") from e

    def _load_from_file(self) -> None:
        """Load data from file."""
        try:
            data = json.loads(self._persist_path.read_text())
            self._submissions = dict(data.get("intakes", {}))
            self._files = list(data.get("intake_files", []))
        except (json.JSONDecodeError, OSError, AttributeError) as e:
            # Start fresh rather than refuse to boot
            logger.warning("Could not load intake data from %s: %s", self._persist_path, e)

    # =========================================================================
    # Inserts
    # =========================================================================

    def insert_submission(self, row: dict[str, Any]) -> dict[str, Any]:
        submission_id = row.get("submission_id")
        if not submission_id:
            raise StorageWriteFailure("submission_id is required")

        with self._lock:
            if submission_id in self._submissions:
                raise StorageWriteFailure(f"Submission {submission_id} already exists")

            stored = copy.deepcopy(row)
            self._submissions[submission_id] = stored
            try:
                self._save_to_file()
            except StorageWriteFailure:
                del self._submissions[submission_id]
                raise
            return copy.deepcopy(stored)

    def insert_file(self, row: dict[str, Any]) -> dict[str, Any]:
        submission_id = row.get("submission_id")

        with self._lock:
            if submission_id not in self._submissions:
                raise StorageWriteFailure(
                    f"File row references unknown submission {submission_id}"
                )

            stored = copy.deepcopy(row)
            stored.setdefault("id", f"FILE-{uuid.uuid4().hex[:12].upper()}")
            stored.setdefault("created_at", utc_now().isoformat())
            self._files.append(stored)
            try:
                self._save_to_file()
            except StorageWriteFailure:
                self._files.pop()
                raise
            return copy.deepcopy(stored)

    # =========================================================================
    # Queries
    # =========================================================================

    def get_submission(self, submission_id: str) -> Optional[dict[str, Any]]:
        """Get a submission row by ID."""
        with self._lock:
            row = self._submissions.get(submission_id)
            return copy.deepcopy(row) if row else None

    def list_submissions(
        self,
        status: Optional[SubmissionStatus] = None,
        created_before: Optional[datetime] = None,
    ) -> list[dict[str, Any]]:
        result = []
        with self._lock:
            for row in self._submissions.values():
                if status and row.get("status") != status.value:
                    continue
                if created_before and datetime.fromisoformat(row["created_at"]) >= created_before:
                    continue
                result.append(copy.deepcopy(row))
        return sorted(result, key=lambda r: r["created_at"])

    def list_files(self, submission_id: str) -> list[dict[str, Any]]:
        with self._lock:
            return [copy.deepcopy(f) for f in self._files if f["submission_id"] == submission_id]

    def count(self) -> int:
        """Get total number of submissions."""
        with self._lock:
            return len(self._submissions)

    def count_files(self) -> int:
        """Get total number of file rows."""
        with self._lock:
            return len(self._files)

    # =========================================================================
    # Deletes
    # =========================================================================

    def delete_submission(self, submission_id: str) -> int:
        with self._lock:
            if submission_id not in self._submissions:
                raise StorageError(f"Submission {submission_id} not found")

            remaining = [f for f in self._files if f["submission_id"] != submission_id]
            deleted = len(self._files) - len(remaining)
            self._files = remaining
            del self._submissions[submission_id]
            self._save_to_file()
            return deleted


# =============================================================================
# Singleton Instance
# =============================================================================

_repository_instance: Optional[JsonIntakeRepository] = None


def get_intake_repository(persist_path: Optional[str] = None) -> JsonIntakeRepository:
    """
    Get the JSON repository singleton.

    Args:
        persist_path: Optional path for persistence (only used on first call)

    Returns:
        JsonIntakeRepository instance
    """
    global _repository_instance
    if _repository_instance is None:
        _repository_instance = JsonIntakeRepository(
            persist_path or "data/intakes.json"
        )
    return _repository_instance


def reset_intake_repository() -> None:
    """Reset the singleton (for testing)."""
    global _repository_instance
    _repository_instance = None

"""
Submission Errors

Failures raised while persisting an intake. Validation failures of the
payload itself are not exceptions; see IntakeValidationResult.
"""

from __future__ import annotations

from typing import Optional, Sequence

from intake_core.intake.schema import FieldViolation


class SubmissionError(Exception):
    """Base class for submission failures."""

    pass


class UploadRejected(SubmissionError):
    """Raised when the upload batch breaks the file policy. Nothing is written."""

    def __init__(self, violations: Sequence[FieldViolation]):
        self.violations = tuple(violations)
        super().__init__(f"Upload rejected: {'; '.join(str(v) for v in self.violations)}")


class StorageError(SubmissionError):
    """Raised when a backing store cannot be read or modified."""

    pass


class StorageWriteFailure(StorageError):
    """
    Raised when the parent insert, a blob write or a file-row insert fails.

    Writes completed before the failure are left in place; ``files_written``
    says how many files made it through for the failing submission.
    """

    SUBMISSION_INSERT = "submission_insert"
    BLOB_WRITE = "blob_write"
    FILE_INSERT = "file_insert"

    def __init__(
        self,
        message: str,
        stage: Optional[str] = None,
        submission_id: Optional[str] = None,
        files_written: int = 0,
    ):
        self.stage = stage
        self.submission_id = submission_id
        self.files_written = files_written
        super().__init__(message)

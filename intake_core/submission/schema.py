"""
Submission Schema - Intake Records and Uploaded Files

Defines the persisted shapes of an intake: one IntakeSubmission row per
submit, and one UploadedFile row per stored blob.

Principles:
- Submissions are immutable once created (no update path)
- Identifiers are never reused
- File limits are enforced on the server, not only in the browser
"""

from __future__ import annotations

import re
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Final, Optional, Sequence

from intake_core.intake.schema import FieldViolation, IntakePayload
from utils.formatting import format_file_size


# =============================================================================
# Enums
# =============================================================================


class SubmissionStatus(Enum):
    """Lifecycle status of an intake record."""

    RECEIVED = "received"
    # Set outside this service once the intake becomes an engagement
    CONVERTED = "converted"


# =============================================================================
# Constants
# =============================================================================

SUBMISSION_ID_PREFIX: Final[str] = "LVIL"

SUBMISSION_ID_REGEX: Final = re.compile(r"^LVIL-\d{13}-[0-9A-F]{6}$")

MAX_FILES: Final[int] = 15

MAX_FILE_SIZE_BYTES: Final[int] = 25 * 1024 * 1024

ALLOWED_MIME_TYPES: Final[tuple[str, ...]] = ("application/pdf",)

ALLOWED_MIME_PREFIXES: Final[tuple[str, ...]] = ("image/",)

# Multipart envelope allowance on top of the file payload
REQUEST_OVERHEAD_BYTES: Final[int] = 1024 * 1024

MAX_REQUEST_BYTES: Final[int] = MAX_FILES * MAX_FILE_SIZE_BYTES + REQUEST_OVERHEAD_BYTES

DEFAULT_RETENTION_DAYS: Final[int] = 60


# =============================================================================
# Helpers
# =============================================================================


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_millis(moment: datetime) -> int:
    """Milliseconds since the epoch."""
    return int(moment.timestamp() * 1000)


def generate_submission_id(now: Optional[datetime] = None) -> str:
    """
    Generate a submission ID: prefix, creation time in ms, random suffix.

    The timestamp keeps IDs human-scannable and ordered; the random suffix
    separates submissions created in the same millisecond.
    """
    stamp = to_millis(now or utc_now())
    return f"{SUBMISSION_ID_PREFIX}-{stamp}-{uuid.uuid4().hex[:6].upper()}"


def sanitise_filename(filename: str) -> str:
    """Sanitise filename for use inside a storage path."""
    safe = filename.replace("/", "_").replace("\\", "_").replace("..", "_")
    safe = safe.strip().strip(".")
    if not safe:
        safe = "document"
    return safe


def build_storage_path(submission_id: str, upload_ms: int, filename: str) -> str:
    """Storage path of one file, scoped under its submission's namespace."""
    return f"{submission_id}/{upload_ms}-{sanitise_filename(filename)}"


def is_allowed_mimetype(mimetype: str) -> bool:
    mimetype = (mimetype or "").lower()
    return mimetype in ALLOWED_MIME_TYPES or mimetype.startswith(ALLOWED_MIME_PREFIXES)


def _parse_timestamp(value: Any) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    # PostgREST returns "+00:00"; older rows may carry a trailing "Z"
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


# =============================================================================
# Incoming File
# =============================================================================


@dataclass(frozen=True)
class IncomingFile:
    """An uploaded file held in memory, not yet stored."""

    content: bytes
    filename: str
    mimetype: str
    size: int

    @classmethod
    def from_bytes(
        cls,
        content: bytes,
        filename: str,
        mimetype: Optional[str] = None,
    ) -> "IncomingFile":
        return cls(
            content=content,
            filename=filename,
            mimetype=mimetype or "application/octet-stream",
            size=len(content),
        )


def check_upload_batch(files: Sequence[IncomingFile]) -> tuple[FieldViolation, ...]:
    """
    Check an upload batch against the file policy.

    Args:
        files: Files in submission order

    Returns:
        Tuple of violations; empty when the batch is acceptable
    """
    violations: list[FieldViolation] = []

    if len(files) > MAX_FILES:
        violations.append(FieldViolation(
            path="files",
            message=f"Too many files: {len(files)}. Maximum is {MAX_FILES}",
        ))

    for index, incoming in enumerate(files):
        path = f"files.{index}"
        if incoming.size > MAX_FILE_SIZE_BYTES:
            violations.append(FieldViolation(
                path=path,
                message=f"{incoming.filename} is larger than {format_file_size(MAX_FILE_SIZE_BYTES)}",
            ))
        elif incoming.size == 0:
            violations.append(FieldViolation(path=path, message=f"{incoming.filename} is empty"))

        if not is_allowed_mimetype(incoming.mimetype):
            violations.append(FieldViolation(
                path=path,
                message=f"{incoming.filename}: only PDF and image files are accepted",
            ))

    return tuple(violations)


# =============================================================================
# Intake Submission
# =============================================================================


@dataclass(frozen=True)
class IntakeSubmission:
    """
    Immutable parent record of one intake.

    Section values are stored as submitted (wire keys), so the row can be
    read back by tools that never import the intake models.
    """

    submission_id: str
    personal: dict
    immigration: dict
    documents: dict
    consent: dict
    created_at: datetime
    status: SubmissionStatus = SubmissionStatus.RECEIVED

    @classmethod
    def create(
        cls,
        payload: IntakePayload,
        now: Optional[datetime] = None,
        submission_id: Optional[str] = None,
    ) -> "IntakeSubmission":
        """Create a new record with status RECEIVED."""
        created_at = now or utc_now()
        return cls(
            submission_id=submission_id or generate_submission_id(created_at),
            personal=payload.section_dict("personal"),
            immigration=payload.section_dict("immigration"),
            documents=payload.section_dict("documents"),
            consent=payload.section_dict("consent"),
            created_at=created_at,
        )

    def to_row(self) -> dict[str, Any]:
        """Convert to a storage row."""
        return {
            "submission_id": self.submission_id,
            "personal": self.personal,
            "immigration": self.immigration,
            "documents": self.documents,
            "consent": self.consent,
            "created_at": self.created_at.isoformat(),
            "status": self.status.value,
        }

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "IntakeSubmission":
        """Create from a storage row."""
        return cls(
            submission_id=row["submission_id"],
            personal=row.get("personal") or {},
            immigration=row.get("immigration") or {},
            documents=row.get("documents") or {},
            consent=row.get("consent") or {},
            created_at=_parse_timestamp(row["created_at"]),
            status=SubmissionStatus(row.get("status", SubmissionStatus.RECEIVED.value)),
        )


# =============================================================================
# Uploaded File
# =============================================================================


@dataclass(frozen=True)
class UploadedFile:
    """
    Metadata row for one stored blob.

    The blob itself lives in the content store at ``path``.
    """

    submission_id: str
    path: str
    filename: str
    mimetype: str
    size: int
    file_id: Optional[str] = None
    uploaded_at: Optional[datetime] = None

    @classmethod
    def for_upload(
        cls,
        submission_id: str,
        path: str,
        incoming: IncomingFile,
    ) -> "UploadedFile":
        return cls(
            submission_id=submission_id,
            path=path,
            filename=incoming.filename,
            mimetype=incoming.mimetype,
            size=incoming.size,
        )

    def to_row(self) -> dict[str, Any]:
        """Convert to a storage row; unset store-assigned columns are omitted."""
        row: dict[str, Any] = {
            "submission_id": self.submission_id,
            "path": self.path,
            "filename": self.filename,
            "mimetype": self.mimetype,
            "size": self.size,
        }
        if self.file_id is not None:
            row["id"] = self.file_id
        if self.uploaded_at is not None:
            row["created_at"] = self.uploaded_at.isoformat()
        return row

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "UploadedFile":
        file_id = row.get("id")
        return cls(
            submission_id=row["submission_id"],
            path=row["path"],
            filename=row["filename"],
            mimetype=row["mimetype"],
            size=int(row["size"]),
            file_id=str(file_id) if file_id is not None else None,
            uploaded_at=_parse_timestamp(row.get("created_at")),
        )

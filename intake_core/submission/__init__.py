"""
Client Intake - Submission Writer

Persists a validated intake: one parent record, one blob plus one metadata
row per uploaded file, then a single best-effort CRM notification.

Principles:
1. Validate before writing anything
2. Forward-only writes, no rollback on later failure
3. Notification failure is invisible to the client
"""

from intake_core.submission.schema import (
    SubmissionStatus,
    IntakeSubmission,
    UploadedFile,
    IncomingFile,
    generate_submission_id,
    build_storage_path,
    check_upload_batch,
    SUBMISSION_ID_PREFIX,
    SUBMISSION_ID_REGEX,
    MAX_FILES,
    MAX_FILE_SIZE_BYTES,
    MAX_REQUEST_BYTES,
    DEFAULT_RETENTION_DAYS,
)
from intake_core.submission.errors import (
    SubmissionError,
    UploadRejected,
    StorageError,
    StorageWriteFailure,
)
from intake_core.submission.repository import (
    IntakeRepository,
    JsonIntakeRepository,
    get_intake_repository,
    reset_intake_repository,
)
from intake_core.submission.storage import (
    ContentStore,
    LocalContentStore,
    get_content_store,
    reset_content_store,
)
from intake_core.submission.notifier import (
    SubmissionNotifier,
    WebhookNotifier,
    NullNotifier,
    create_notifier,
)
from intake_core.submission.writer import (
    SubmissionWriter,
    build_submission_writer,
    create_backends,
    get_submission_writer,
    reset_submission_writer,
)
from intake_core.submission.retention import (
    RetentionReport,
    purge_unconverted,
)

__all__ = [
    # Schema
    "SubmissionStatus",
    "IntakeSubmission",
    "UploadedFile",
    "IncomingFile",
    "generate_submission_id",
    "build_storage_path",
    "check_upload_batch",
    "SUBMISSION_ID_PREFIX",
    "SUBMISSION_ID_REGEX",
    "MAX_FILES",
    "MAX_FILE_SIZE_BYTES",
    "MAX_REQUEST_BYTES",
    "DEFAULT_RETENTION_DAYS",
    # Errors
    "SubmissionError",
    "UploadRejected",
    "StorageError",
    "StorageWriteFailure",
    # Repository
    "IntakeRepository",
    "JsonIntakeRepository",
    "get_intake_repository",
    "reset_intake_repository",
    # Storage
    "ContentStore",
    "LocalContentStore",
    "get_content_store",
    "reset_content_store",
    # Notification
    "SubmissionNotifier",
    "WebhookNotifier",
    "NullNotifier",
    "create_notifier",
    # Writer
    "SubmissionWriter",
    "build_submission_writer",
    "create_backends",
    "get_submission_writer",
    "reset_submission_writer",
    # Retention
    "RetentionReport",
    "purge_unconverted",
]

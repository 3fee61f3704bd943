"""
Submission Writer - Persist a Validated Intake

Writes one intake in a forward-only sequence of fallible steps:
1. Check the upload batch against the file policy
2. Insert the parent submission row (status "received")
3. For each file, in order: put the blob, then insert its metadata row
4. Hand one notification to the dispatcher (best-effort)
5. Return the submission ID

Any failure in steps 2-3 aborts the request. Nothing already written is
rolled back: the content store and the row store are independent systems.
"""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Iterable, Optional

from intake_core.intake.schema import IntakePayload
from intake_core.submission.errors import StorageWriteFailure, UploadRejected
from intake_core.submission.notifier import NullNotifier, SubmissionNotifier, create_notifier
from intake_core.submission.repository import IntakeRepository, get_intake_repository
from intake_core.submission.schema import (
    IncomingFile,
    IntakeSubmission,
    UploadedFile,
    build_storage_path,
    check_upload_batch,
    to_millis,
    utc_now,
)
from intake_core.submission.storage import ContentStore, get_content_store
from intake_core.submission.supabase import (
    SupabaseClient,
    SupabaseContentStore,
    SupabaseIntakeRepository,
)
from utils.config import Config


logger = logging.getLogger(__name__)

# Schedules a call: dispatch(fn, *args). The HTTP layer passes
# BackgroundTasks.add_task so the webhook runs after the response is sent.
Dispatch = Callable[..., Any]


def run_inline(fn: Callable[..., Any], *args: Any) -> None:
    """Default dispatcher: call immediately."""
    fn(*args)


# =============================================================================
# Writer
# =============================================================================


class SubmissionWriter:
    """
    Persists validated intakes with their files.

    Holds no per-request state; one instance serves every request.
    """

    def __init__(
        self,
        repository: IntakeRepository,
        content_store: ContentStore,
        notifier: Optional[SubmissionNotifier] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._repository = repository
        self._content_store = content_store
        self._notifier = notifier or NullNotifier()
        self._clock = clock

    def submit(
        self,
        payload: IntakePayload,
        files: Iterable[IncomingFile] = (),
        dispatch: Optional[Dispatch] = None,
    ) -> str:
        """
        Store a validated intake and its files.

        Args:
            payload: Payload that passed validate_intake_data
            files: Files in the order they were uploaded
            dispatch: Scheduler for the notification; defaults to run_inline

        Returns:
            The new submission ID

        Raises:
            UploadRejected: If the files break the upload policy (nothing written)
            StorageWriteFailure: If a row or blob write fails (earlier writes kept)
        """
        files = list(files)

        violations = check_upload_batch(files)
        if violations:
            raise UploadRejected(violations)

        submission = IntakeSubmission.create(payload, now=self._clock())
        submission_id = submission.submission_id

        try:
            self._repository.insert_submission(submission.to_row())
        except Exception as e:
            raise self._failure(StorageWriteFailure.SUBMISSION_INSERT, submission_id, 0, e) from e

        uploaded: list[UploadedFile] = []
        last_ms = 0
        for incoming in files:
            # Strictly increasing within a submission, so repeated filenames
            # never map to the same path
            upload_ms = max(to_millis(self._clock()), last_ms + 1)
            last_ms = upload_ms
            path = build_storage_path(submission_id, upload_ms, incoming.filename)

            try:
                stored_path = self._content_store.put(path, incoming.content, incoming.mimetype)
            except Exception as e:
                raise self._failure(
                    StorageWriteFailure.BLOB_WRITE, submission_id, len(uploaded), e, incoming.filename
                ) from e

            record = UploadedFile.for_upload(submission_id, stored_path, incoming)
            try:
                row = self._repository.insert_file(record.to_row())
            except Exception as e:
                raise self._failure(
                    StorageWriteFailure.FILE_INSERT, submission_id, len(uploaded), e, incoming.filename
                ) from e

            uploaded.append(UploadedFile.from_row(row))

        logger.info("Intake %s stored with %d file(s)", submission_id, len(uploaded))

        (dispatch or run_inline)(
            self._notifier.notify,
            submission_id,
            payload.to_dict(),
            [f.to_row() for f in uploaded],
        )

        return submission_id

    @staticmethod
    def _failure(
        stage: str,
        submission_id: str,
        files_written: int,
        cause: Exception,
        filename: Optional[str] = None,
    ) -> StorageWriteFailure:
        subject = f" for {filename}" if filename else ""
        logger.error(
            "Intake %s: %s failed%s after %d file(s): %s",
            submission_id,
            stage,
            subject,
            files_written,
            cause,
        )
        return StorageWriteFailure(
            str(cause),
            stage=stage,
            submission_id=submission_id,
            files_written=files_written,
        )


# =============================================================================
# Construction
# =============================================================================


def create_backends(config: Config) -> tuple[IntakeRepository, ContentStore]:
    """
    Build the row store and content store selected by configuration.

    Raises:
        ValueError: If the backend is unknown or incompletely configured
    """
    if config.storage_backend == "supabase":
        client = SupabaseClient(config.supabase_url, config.supabase_service_key)
        return (
            SupabaseIntakeRepository(client),
            SupabaseContentStore(client, bucket=config.supabase_bucket),
        )

    if config.storage_backend == "local":
        data_dir = Path(config.data_dir)
        return (
            get_intake_repository(str(data_dir / "intakes.json")),
            get_content_store(str(data_dir / "intake-uploads")),
        )

    raise ValueError(f"Unknown storage backend: {config.storage_backend}")


def build_submission_writer(config: Config) -> SubmissionWriter:
    """Build a writer from configuration."""
    repository, content_store = create_backends(config)
    notifier = create_notifier(config.webhook_url, timeout=config.webhook_timeout)
    return SubmissionWriter(repository, content_store, notifier)


# =============================================================================
# Singleton Instance
# =============================================================================

_writer_instance: Optional[SubmissionWriter] = None


def get_submission_writer() -> SubmissionWriter:
    """
    Get the submission writer singleton, built from the environment.

    Returns:
        SubmissionWriter instance
    """
    global _writer_instance
    if _writer_instance is None:
        _writer_instance = build_submission_writer(Config.load())
    return _writer_instance


def reset_submission_writer() -> None:
    """Reset the singleton (for testing)."""
    global _writer_instance
    _writer_instance = None

"""
Retention - Purge Unconverted Intakes

Intakes that never become an engagement are kept for a limited window
(60 days by default), then deleted together with their files.

Run out-of-band (see ``python -m intake_core.cli purge``); never called on
the request path.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Optional

from intake_core.submission.repository import IntakeRepository
from intake_core.submission.schema import DEFAULT_RETENTION_DAYS, SubmissionStatus, utc_now
from intake_core.submission.storage import ContentStore


logger = logging.getLogger(__name__)


@dataclass
class RetentionReport:
    """Outcome of one purge run."""

    cutoff: datetime
    dry_run: bool
    submission_ids: list[str] = field(default_factory=list)
    file_rows_deleted: int = 0
    blobs_deleted: int = 0

    @property
    def submissions_deleted(self) -> int:
        return 0 if self.dry_run else len(self.submission_ids)

    def to_dict(self) -> dict:
        return {
            "cutoff": self.cutoff.isoformat(),
            "dry_run": self.dry_run,
            "submission_ids": list(self.submission_ids),
            "submissions_deleted": self.submissions_deleted,
            "file_rows_deleted": self.file_rows_deleted,
            "blobs_deleted": self.blobs_deleted,
        }


def purge_unconverted(
    repository: IntakeRepository,
    content_store: ContentStore,
    retention_days: int = DEFAULT_RETENTION_DAYS,
    now: Optional[datetime] = None,
    dry_run: bool = False,
) -> RetentionReport:
    """
    Delete received intakes older than the retention window.

    Blobs go first, then rows: if a blob delete fails the rows remain and
    the next run picks the submission up again.

    Args:
        repository: Row store
        content_store: Blob store
        retention_days: Age in days after which an intake is purged
        now: Reference time (timezone-aware); defaults to current UTC time
        dry_run: Report what would be deleted without deleting

    Returns:
        RetentionReport
    """
    if retention_days < 0:
        raise ValueError("retention_days must not be negative")

    cutoff = (now or utc_now()) - timedelta(days=retention_days)
    report = RetentionReport(cutoff=cutoff, dry_run=dry_run)

    expired = repository.list_submissions(
        status=SubmissionStatus.RECEIVED,
        created_before=cutoff,
    )

    for row in expired:
        submission_id = row["submission_id"]
        report.submission_ids.append(submission_id)
        if dry_run:
            continue

        paths = [f["path"] for f in repository.list_files(submission_id)]
        report.blobs_deleted += content_store.delete(paths)
        report.file_rows_deleted += repository.delete_submission(submission_id)
        logger.info("Purged intake %s (%d file(s))", submission_id, len(paths))

    logger.info(
        "Retention run: %d intake(s) older than %s%s",
        len(report.submission_ids),
        cutoff.isoformat(),
        " (dry run)" if dry_run else "",
    )
    return report

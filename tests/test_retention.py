"""
Tests for the retention purge of unconverted intakes.
"""

from dataclasses import replace
from datetime import datetime, timedelta, timezone

import pytest

from intake_core.submission import (
    IntakeSubmission,
    SubmissionStatus,
    SubmissionWriter,
    purge_unconverted,
)


NOW = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)


def _store_intake(repository, content_store, payload, created_at, files=()):
    writer = SubmissionWriter(repository, content_store, clock=lambda: created_at)
    return writer.submit(payload, files)


def _store_converted(repository, payload, created_at):
    # Conversion happens outside this service; insert the row as it would end up
    submission = replace(IntakeSubmission.create(payload, now=created_at), status=SubmissionStatus.CONVERTED)
    repository.insert_submission(submission.to_row())
    return submission.submission_id


class TestPurgeUnconverted:
    """Tests for purge_unconverted."""

    def test_old_received_intake_purged(self, repository, content_store, intake_payload, pdf_file):
        """Intakes past the window lose their rows and blobs."""
        old = _store_intake(repository, content_store, intake_payload, NOW - timedelta(days=61), [pdf_file])
        recent = _store_intake(repository, content_store, intake_payload, NOW - timedelta(days=10), [pdf_file])

        report = purge_unconverted(repository, content_store, retention_days=60, now=NOW)

        assert report.submission_ids == [old]
        assert report.submissions_deleted == 1
        assert report.file_rows_deleted == 1
        assert report.blobs_deleted == 1
        assert repository.get_submission(old) is None
        assert content_store.list_paths(old) == []
        assert repository.get_submission(recent) is not None
        assert len(content_store.list_paths(recent)) == 1

    def test_converted_intake_kept(self, repository, content_store, intake_payload):
        """Converted intakes are never purged, however old."""
        submission_id = _store_converted(repository, intake_payload, NOW - timedelta(days=400))

        report = purge_unconverted(repository, content_store, now=NOW)

        assert report.submission_ids == []
        assert repository.get_submission(submission_id) is not None

    def test_dry_run_deletes_nothing(self, repository, content_store, intake_payload, pdf_file):
        submission_id = _store_intake(
            repository, content_store, intake_payload, NOW - timedelta(days=90), [pdf_file]
        )

        report = purge_unconverted(repository, content_store, now=NOW, dry_run=True)

        assert report.submission_ids == [submission_id]
        assert report.submissions_deleted == 0
        assert repository.get_submission(submission_id) is not None
        assert len(content_store.list_paths(submission_id)) == 1

    def test_boundary_is_exclusive(self, repository, content_store, intake_payload):
        """An intake exactly at the cutoff is kept."""
        submission_id = _store_intake(repository, content_store, intake_payload, NOW - timedelta(days=60))

        report = purge_unconverted(repository, content_store, retention_days=60, now=NOW)

        assert report.submission_ids == []
        assert repository.get_submission(submission_id) is not None

    def test_report_to_dict(self, repository, content_store):
        report = purge_unconverted(repository, content_store, retention_days=30, now=NOW)

        data = report.to_dict()

        assert data["cutoff"] == (NOW - timedelta(days=30)).isoformat()
        assert data["submissions_deleted"] == 0

    def test_negative_window_rejected(self, repository, content_store):
        with pytest.raises(ValueError):
            purge_unconverted(repository, content_store, retention_days=-1, now=NOW)

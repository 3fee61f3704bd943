"""
Shared fixtures for intake tests.
"""

from __future__ import annotations

import copy

import pytest

from intake_core.intake import create_payload
from intake_core.submission import (
    IncomingFile,
    JsonIntakeRepository,
    LocalContentStore,
    SubmissionNotifier,
    SubmissionWriter,
)


VALID_INTAKE = {
    "personal": {
        "firstName": "Maria",
        "lastName": "Lopez",
        "email": "maria.lopez@example.com",
        "phone": "610-555-0142",
        "preferredLanguage": "Spanish",
        "dob": "1988-04-12",
        "aNumber": "A123456789",
        "countryOfBirth": "Guatemala",
        "addressLine1": "12 Hamilton St",
        "city": "Allentown",
        "state": "PA",
        "zip": "18101",
    },
    "immigration": {
        "caseType": "Asylum",
        "entryDate": "2019-06-01",
        "mannerOfEntry": "EWI",
        "statusHistory": "",
        "priorFilings": "",
        "criminalHistory": "",
    },
    "documents": {"notes": "Passport and birth certificate attached"},
    "consent": {
        "consent": True,
        "signature": "Maria Lopez",
        "dateSigned": "2026-10-18",
    },
}


class RecordingNotifier(SubmissionNotifier):
    """Keeps every notification document it is asked to send."""

    def __init__(self, fail: bool = False):
        self.documents: list[dict] = []
        self.fail = fail

    def send(self, document: dict) -> None:
        self.documents.append(document)
        if self.fail:
            raise RuntimeError("webhook unreachable")


@pytest.fixture
def intake_data():
    """A complete, valid intake payload as the wizard sends it."""
    return copy.deepcopy(VALID_INTAKE)


@pytest.fixture
def intake_payload(intake_data):
    """The validated IntakePayload for intake_data."""
    return create_payload(intake_data)


@pytest.fixture
def pdf_file():
    return IncomingFile.from_bytes(b"%PDF-1.7 passport scan", "passport.pdf", "application/pdf")


@pytest.fixture
def image_file():
    return IncomingFile.from_bytes(b"\x89PNG birth certificate", "birth-certificate.png", "image/png")


@pytest.fixture
def repository():
    """A fresh in-memory repository."""
    return JsonIntakeRepository()


@pytest.fixture
def content_store(tmp_path):
    """A content store rooted in a temporary directory."""
    return LocalContentStore(str(tmp_path / "uploads"))


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def writer(repository, content_store, notifier):
    return SubmissionWriter(repository, content_store, notifier)


@pytest.fixture
def failing_notifier():
    """A notifier whose webhook call always raises."""
    return RecordingNotifier(fail=True)

"""
Tests for the intake HTTP API

Tests cover:
- POST /api/submit success and every rejection path
- Request size limit
- Per-step validation endpoint
- Wizard options and health endpoints
"""

import json

import pytest
from fastapi.testclient import TestClient
from starlette.datastructures import FormData

from intake_core.submission import (
    MAX_FILE_SIZE_BYTES,
    MAX_REQUEST_BYTES,
    SUBMISSION_ID_REGEX,
    LocalContentStore,
    StorageWriteFailure,
    SubmissionWriter,
    get_submission_writer,
)
from utils.config import Config
from web.app import create_app


def _pdf_part(name="passport.pdf", content=b"%PDF-1.7 passport"):
    return ("files", (name, content, "application/pdf"))


class SecondPutFails(LocalContentStore):
    def __init__(self, storage_root):
        super().__init__(storage_root)
        self.puts = 0

    def put(self, path, content, content_type):
        self.puts += 1
        if self.puts == 2:
            raise StorageWriteFailure("bucket unavailable")
        return super().put(path, content, content_type)


@pytest.fixture
def app(writer):
    app = create_app(Config())
    app.dependency_overrides[get_submission_writer] = lambda: writer
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def client(app):
    return TestClient(app)


def _submit(client, data, files=()):
    return client.post(
        "/api/submit",
        data={"payload": json.dumps(data)},
        files=list(files) or None,
    )


# =============================================================================
# Successful Submission
# =============================================================================


class TestSubmitSuccess:
    """Tests for accepted submissions."""

    def test_submit_with_two_files(self, client, intake_data, repository, content_store, notifier):
        """200 with a submission ID; rows, blobs and one notification exist."""
        response = _submit(
            client,
            intake_data,
            [_pdf_part(), ("files", ("photo.jpg", b"\xff\xd8\xff photo", "image/jpeg"))],
        )

        assert response.status_code == 200
        submission_id = response.json()["submissionId"]
        assert SUBMISSION_ID_REGEX.match(submission_id)
        assert repository.get_submission(submission_id) is not None
        assert len(repository.list_files(submission_id)) == 2
        assert len(content_store.list_paths(submission_id)) == 2
        assert len(notifier.documents) == 1
        assert notifier.documents[0]["submissionId"] == submission_id

    def test_submit_without_files(self, client, intake_data, repository):
        response = _submit(client, intake_data)

        assert response.status_code == 200
        assert repository.count() == 1
        assert repository.count_files() == 0

    def test_failing_webhook_still_succeeds(self, app, intake_data, repository, content_store, failing_notifier):
        """A webhook error never reaches the client."""
        app.dependency_overrides[get_submission_writer] = lambda: SubmissionWriter(
            repository, content_store, failing_notifier
        )

        response = _submit(TestClient(app), intake_data, [_pdf_part()])

        assert response.status_code == 200
        assert len(failing_notifier.documents) == 1

    def test_fifteen_files(self, client, intake_data, repository):
        """Exactly the maximum number of files is accepted over HTTP."""
        files = [_pdf_part(f"page-{i}.pdf") for i in range(15)]

        response = _submit(client, intake_data, files)

        assert response.status_code == 200
        assert len(repository.list_files(response.json()["submissionId"])) == 15

    @pytest.mark.parametrize("file_count", [1, 16])
    def test_form_released_after_request(self, client, intake_data, monkeypatch, file_count):
        """Spooled upload parts are closed whether the submission succeeds or not."""
        closed = []
        original_close = FormData.close

        async def recording_close(form):
            closed.append(form)
            await original_close(form)

        monkeypatch.setattr(FormData, "close", recording_close)

        _submit(client, intake_data, [_pdf_part(f"page-{i}.pdf") for i in range(file_count)])

        assert closed


# =============================================================================
# Rejections
# =============================================================================


class TestSubmitRejections:
    """Tests for 400 responses; nothing is stored for any of them."""

    def _assert_rejected(self, response, repository, notifier):
        assert response.status_code == 400
        body = response.json()
        assert body["error"]
        assert isinstance(body["violations"], list)
        assert repository.count() == 0
        assert notifier.documents == []
        return body

    def test_missing_required_field(self, client, intake_data, repository, notifier):
        del intake_data["personal"]["email"]

        body = self._assert_rejected(_submit(client, intake_data), repository, notifier)

        assert {"path": "personal.email", "message": "This field is required"} in body["violations"]

    def test_case_type_outside_enumeration(self, client, intake_data, repository, notifier):
        intake_data["immigration"]["caseType"] = "Tourist Visa"

        body = self._assert_rejected(_submit(client, intake_data), repository, notifier)

        assert [v["path"] for v in body["violations"]] == ["immigration.caseType"]

    def test_consent_not_given(self, client, intake_data, repository, notifier):
        intake_data["consent"]["consent"] = False

        body = self._assert_rejected(_submit(client, intake_data), repository, notifier)

        assert body["violations"] == [{"path": "consent.consent", "message": "Consent required"}]

    def test_sixteen_files(self, client, intake_data, repository, notifier):
        files = [_pdf_part(f"page-{i}.pdf") for i in range(16)]

        body = self._assert_rejected(_submit(client, intake_data, files), repository, notifier)

        assert body["violations"][0]["path"] == "files"

    def test_oversized_file(self, client, intake_data, repository, content_store, notifier):
        big = ("files", ("huge.pdf", b"0" * (MAX_FILE_SIZE_BYTES + 1), "application/pdf"))

        body = self._assert_rejected(
            _submit(client, intake_data, [_pdf_part(), big]), repository, notifier
        )

        assert body["violations"] == [{"path": "files.1", "message": "huge.pdf is larger than 25 MB"}]
        assert list(content_store.storage_root.rglob("*")) == []

    def test_disallowed_file_type(self, client, intake_data, repository, notifier):
        text = ("files", ("notes.txt", b"hello", "text/plain"))

        self._assert_rejected(_submit(client, intake_data, [text]), repository, notifier)

    def test_payload_not_json(self, client, repository, notifier):
        response = client.post("/api/submit", data={"payload": "{not json"})

        body = self._assert_rejected(response, repository, notifier)

        assert body["violations"] == [{"path": "payload", "message": "Must be valid JSON"}]

    def test_payload_missing(self, client, repository, notifier):
        response = client.post("/api/submit", files=[_pdf_part()])

        body = self._assert_rejected(response, repository, notifier)

        assert body["violations"][0]["path"] == "payload"

    def test_payload_not_an_object(self, client, repository, notifier):
        response = client.post("/api/submit", data={"payload": "[1, 2]"})

        body = self._assert_rejected(response, repository, notifier)

        assert body["violations"][0]["path"] == "payload"

    def test_get_not_allowed(self, client):
        assert client.get("/api/submit").status_code == 405


class TestSubmitStorageFailure:
    """Tests for failures after writes have begun."""

    def test_second_blob_failure(self, app, tmp_path, intake_data, repository, notifier):
        """400; the parent row and first file remain; no notification."""
        store = SecondPutFails(str(tmp_path / "failing"))
        app.dependency_overrides[get_submission_writer] = lambda: SubmissionWriter(
            repository, store, notifier
        )

        response = _submit(
            TestClient(app),
            intake_data,
            [_pdf_part("first.pdf"), _pdf_part("second.pdf")],
        )

        assert response.status_code == 400
        assert "bucket unavailable" in response.json()["error"]
        [row] = repository.list_submissions()
        [file_row] = repository.list_files(row["submission_id"])
        assert file_row["filename"] == "first.pdf"
        assert notifier.documents == []


class TestRequestSizeLimit:

    def test_declared_oversize_body_rejected(self, client, repository):
        """Bodies declared larger than the limit are refused before parsing."""
        response = client.post(
            "/api/submit",
            content=b"x",
            headers={
                "content-type": "multipart/form-data; boundary=xyz",
                "content-length": str(MAX_REQUEST_BYTES + 1),
            },
        )

        assert response.status_code == 413
        assert response.json()["violations"] == []
        assert repository.count() == 0

    def _multipart(self, intake_data, file_bytes):
        boundary = "intake-boundary"
        body = (
            f"--{boundary}\r\n"
            'Content-Disposition: form-data; name="payload"\r\n\r\n'
            f"{json.dumps(intake_data)}\r\n"
            f"--{boundary}\r\n"
            'Content-Disposition: form-data; name="files"; filename="scan.pdf"\r\n'
            "Content-Type: application/pdf\r\n\r\n"
        ).encode() + file_bytes + f"\r\n--{boundary}--\r\n".encode()
        return body, f"multipart/form-data; boundary={boundary}"

    def _post_chunked(self, app, body, content_type):
        def chunks():
            for start in range(0, len(body), 512):
                yield body[start:start + 512]

        return TestClient(app).post(
            "/api/submit",
            content=chunks(),
            headers={"content-type": content_type},
        )

    def test_streamed_oversize_body_rejected(self, writer, intake_data, repository, notifier):
        """A body without Content-Length is cut off once it passes the limit."""
        app = create_app(Config(), max_request_bytes=1000)
        app.dependency_overrides[get_submission_writer] = lambda: writer
        body, content_type = self._multipart(intake_data, b"%PDF" + b"0" * 50_000)

        response = self._post_chunked(app, body, content_type)

        assert response.status_code == 413
        assert response.json()["violations"] == []
        assert repository.count() == 0
        assert notifier.documents == []

    def test_streamed_body_within_limit_accepted(self, app, intake_data, repository):
        """Streamed bodies under the limit are stored normally."""
        body, content_type = self._multipart(intake_data, b"%PDF-1.7 scan")

        response = self._post_chunked(app, body, content_type)

        assert response.status_code == 200
        assert repository.count_files() == 1


# =============================================================================
# Wizard Support
# =============================================================================


class TestValidateStepEndpoint:
    """Tests for POST /api/validate/{step}."""

    def test_valid_step(self, client, intake_data):
        response = client.post("/api/validate/personal", json=intake_data["personal"])

        assert response.status_code == 200
        assert response.json() == {"valid": True, "violations": []}

    def test_invalid_step_data(self, client, intake_data):
        intake_data["personal"]["zip"] = "1"

        response = client.post("/api/validate/personal", json=intake_data["personal"])

        assert response.status_code == 200
        body = response.json()
        assert body["valid"] is False
        assert [v["path"] for v in body["violations"]] == ["personal.zip"]

    def test_review_validates_everything(self, client, intake_data):
        intake_data["consent"]["consent"] = False

        response = client.post("/api/validate/review", json=intake_data)

        assert [v["path"] for v in response.json()["violations"]] == ["consent.consent"]

    def test_unknown_step(self, client):
        assert client.post("/api/validate/payment", json={}).status_code == 404

    def test_body_not_json(self, client):
        response = client.post(
            "/api/validate/consent",
            content=b"{oops",
            headers={"content-type": "application/json"},
        )

        assert response.status_code == 400


class TestOptionsAndHealth:

    def test_intake_options(self, client):
        body = client.get("/api/intake/options").json()

        assert body["steps"] == ["personal", "immigration", "documents", "consent", "review"]
        assert len(body["caseTypes"]) == 8
        assert "Asylum" in body["caseTypes"]
        assert body["uploads"]["maxFiles"] == 15
        assert body["uploads"]["maxFileSizeBytes"] == MAX_FILE_SIZE_BYTES
        assert body["uploads"]["maxFileSize"] == "25 MB"

    def test_health(self, client):
        assert client.get("/").json() == {"status": "ok"}
        assert client.get("/health").json()["status"] == "healthy"

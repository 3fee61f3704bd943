"""
Supabase Backend - Hosted Rows and Blobs for Intakes

Implements IntakeRepository over PostgREST (tables ``intakes`` and
``intake_files``) and ContentStore over Supabase Storage (bucket
``intake-uploads``), authenticating with the service-role key.

Server-side only: the service-role key bypasses row-level security and
must never reach the browser.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Final, Iterable, Optional
from urllib.parse import quote

import requests

from intake_core.submission.errors import StorageError, StorageWriteFailure
from intake_core.submission.repository import IntakeRepository
from intake_core.submission.schema import SubmissionStatus
from intake_core.submission.storage import ContentStore


logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

SUBMISSIONS_TABLE: Final[str] = "intakes"

FILES_TABLE: Final[str] = "intake_files"

DEFAULT_BUCKET: Final[str] = "intake-uploads"

REQUEST_TIMEOUT_SECONDS: Final[int] = 30


# =============================================================================
# Client
# =============================================================================


class SupabaseClient:
    """Minimal service-role client for the REST and Storage APIs."""

    def __init__(
        self,
        url: str,
        service_key: str,
        session: Optional[requests.Session] = None,
        timeout: int = REQUEST_TIMEOUT_SECONDS,
    ):
        if not url or not service_key:
            raise ValueError("Supabase url and service key are required")
        self._base_url = url.rstrip("/")
        self._timeout = timeout
        self._session = session or requests.Session()
        self._session.headers.update({
            "apikey": service_key,
            "Authorization": f"Bearer {service_key}",
        })

    def rest_url(self, table: str) -> str:
        return f"{self._base_url}/rest/v1/{table}"

    def object_url(self, bucket: str, path: str = "") -> str:
        url = f"{self._base_url}/storage/v1/object/{bucket}"
        return f"{url}/{quote(path)}" if path else url

    def request(self, method: str, url: str, **kwargs: Any) -> requests.Response:
        """
        Send a request and return the response.

        Raises:
            requests.RequestException: On network errors or HTTP error status
        """
        response = self._session.request(method, url, timeout=self._timeout, **kwargs)
        if response.status_code >= 400:
            raise requests.HTTPError(
                f"{method} {url} failed with HTTP {response.status_code}: {_error_detail(response)}",
                response=response,
            )
        return response


def _error_detail(response: requests.Response) -> str:
    """Pull the error message out of a Supabase error body."""
    try:
        body = response.json()
    except ValueError:
        return response.text[:200]
    if isinstance(body, dict):
        return str(body.get("message") or body.get("error") or body)
    return str(body)


def _single(rows: Any) -> dict[str, Any]:
    if isinstance(rows, list) and rows:
        return rows[0]
    if isinstance(rows, dict):
        return rows
    raise ValueError("Insert returned no row")


# =============================================================================
# Repository
# =============================================================================


class SupabaseIntakeRepository(IntakeRepository):
    """Intake rows in Supabase Postgres, via PostgREST."""

    def __init__(self, client: SupabaseClient):
        self._client = client

    def _insert(self, table: str, row: dict[str, Any]) -> dict[str, Any]:
        try:
            response = self._client.request(
                "POST",
                self._client.rest_url(table),
                json=row,
                headers={"Prefer": "return=representation"},
            )
            return _single(response.json())
        except (requests.RequestException, ValueError) as e:
            raise StorageWriteFailure(f"Insert into {table} failed: {e}") from e

    def insert_submission(self, row: dict[str, Any]) -> dict[str, Any]:
        return self._insert(SUBMISSIONS_TABLE, row)

    def insert_file(self, row: dict[str, Any]) -> dict[str, Any]:
        return self._insert(FILES_TABLE, row)

    def _select(self, table: str, params: dict[str, str]) -> list[dict[str, Any]]:
        try:
            response = self._client.request(
                "GET",
                self._client.rest_url(table),
                params={"select": "*", **params},
            )
            return list(response.json())
        except (requests.RequestException, ValueError) as e:
            raise StorageError(f"Query on {table} failed: {e}") from e

    def list_submissions(
        self,
        status: Optional[SubmissionStatus] = None,
        created_before: Optional[datetime] = None,
    ) -> list[dict[str, Any]]:
        params = {"order": "created_at.asc"}
        if status:
            params["status"] = f"eq.{status.value}"
        if created_before:
            params["created_at"] = f"lt.{created_before.isoformat()}"
        return self._select(SUBMISSIONS_TABLE, params)

    def list_files(self, submission_id: str) -> list[dict[str, Any]]:
        return self._select(FILES_TABLE, {"submission_id": f"eq.{submission_id}"})

    def delete_submission(self, submission_id: str) -> int:
        params = {"submission_id": f"eq.{submission_id}"}
        headers = {"Prefer": "return=representation"}
        try:
            # Children first so the foreign key never dangles
            response = self._client.request(
                "DELETE", self._client.rest_url(FILES_TABLE), params=params, headers=headers
            )
            deleted = len(response.json() or [])
            self._client.request(
                "DELETE", self._client.rest_url(SUBMISSIONS_TABLE), params=params, headers=headers
            )
        except (requests.RequestException, ValueError) as e:
            raise StorageError(f"Delete of {submission_id} failed: {e}") from e
        return deleted


# =============================================================================
# Content Store
# =============================================================================


class SupabaseContentStore(ContentStore):
    """Blobs in a Supabase Storage bucket."""

    def __init__(self, client: SupabaseClient, bucket: str = DEFAULT_BUCKET):
        self._client = client
        self._bucket = bucket

    def put(self, path: str, content: bytes, content_type: str) -> str:
        try:
            self._client.request(
                "POST",
                self._client.object_url(self._bucket, path),
                data=content,
                headers={"Content-Type": content_type, "x-upsert": "false"},
            )
        except requests.RequestException as e:
            raise StorageWriteFailure(f"Upload of {path} failed: {e}") from e
        return path

    def delete(self, paths: Iterable[str]) -> int:
        prefixes = list(paths)
        if not prefixes:
            return 0
        try:
            response = self._client.request(
                "DELETE",
                self._client.object_url(self._bucket),
                json={"prefixes": prefixes},
            )
            return len(response.json() or [])
        except (requests.RequestException, ValueError) as e:
            raise StorageError(f"Delete from {self._bucket} failed: {e}") from e

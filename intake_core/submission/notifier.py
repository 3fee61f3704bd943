"""
Submission Notifier - Best-Effort CRM Webhook

After an intake and all its files are stored, one notification is sent to
the CRM webhook (e.g. a Zapier catch hook creating a contact and matter).

Delivery is fire-and-forget:
- any response, error or timeout counts as done
- failures are logged, never raised, never retried
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Final, Optional

import requests


logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

DEFAULT_WEBHOOK_TIMEOUT_SECONDS: Final[float] = 10.0

USER_AGENT: Final[str] = "ClientIntakePortal/1.0"


def build_notification(
    submission_id: str,
    payload: dict[str, Any],
    files: list[dict[str, Any]],
) -> dict[str, Any]:
    """Build the webhook document."""
    return {
        "submissionId": submission_id,
        "payload": payload,
        "files": files,
    }


# =============================================================================
# Notifier Interface
# =============================================================================


class SubmissionNotifier(ABC):
    """Outbound notification for a stored submission."""

    def notify(
        self,
        submission_id: str,
        payload: dict[str, Any],
        files: list[dict[str, Any]],
    ) -> None:
        """
        Send the notification, swallowing any failure.

        Never raises: the caller's result must not depend on the outcome.
        """
        try:
            self.send(build_notification(submission_id, payload, files))
        except Exception as e:
            logger.warning("Notification for %s failed: %s", submission_id, e)

    @abstractmethod
    def send(self, document: dict[str, Any]) -> None:
        """Deliver the notification document. May raise."""


class NullNotifier(SubmissionNotifier):
    """Used when no webhook is configured."""

    def send(self, document: dict[str, Any]) -> None:
        logger.debug("No webhook configured; skipping notification for %s", document["submissionId"])


class WebhookNotifier(SubmissionNotifier):
    """POSTs the notification document as JSON to a webhook URL."""

    def __init__(
        self,
        url: str,
        timeout: float = DEFAULT_WEBHOOK_TIMEOUT_SECONDS,
        session: Optional[requests.Session] = None,
    ):
        if not url:
            raise ValueError("url is required")
        self._url = url
        self._timeout = timeout
        self._session = session or requests.Session()
        self._session.headers.update({"User-Agent": USER_AGENT})

    @property
    def url(self) -> str:
        return self._url

    def send(self, document: dict[str, Any]) -> None:
        response = self._session.post(self._url, json=document, timeout=self._timeout)
        # Status is informational only
        logger.info(
            "Webhook notified for %s (HTTP %s)",
            document["submissionId"],
            response.status_code,
        )


def create_notifier(
    url: Optional[str],
    timeout: float = DEFAULT_WEBHOOK_TIMEOUT_SECONDS,
) -> SubmissionNotifier:
    """Return a WebhookNotifier when a URL is configured, else a NullNotifier."""
    if url:
        return WebhookNotifier(url, timeout=timeout)
    return NullNotifier()

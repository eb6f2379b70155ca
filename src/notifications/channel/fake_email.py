"""Fake email adapter — records outgoing notification emails for testing."""

import threading
from uuid import uuid4

from notifications.channel.email_port import EmailPort


class FakeEmailAdapter(EmailPort):
    """Email adapter that records messages in memory for test assertions.

    Safe to share between consumer worker threads.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self.sent_emails: list[dict] = []
        self.should_succeed = True
        self.failure_reason = "Email delivery failed"
        self.raise_error: Exception | None = None

    def configure(
        self,
        should_succeed: bool = True,
        failure_reason: str = "Email delivery failed",
        raise_error: Exception | None = None,
    ):
        """Make subsequent sends fail (reported) or raise (unexpected)."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason
        self.raise_error = raise_error

    def send(
        self,
        to: str,
        subject: str,
        body: str,
        html_body: str | None = None,
        headers: dict | None = None,
    ) -> dict:
        if self.raise_error is not None:
            raise self.raise_error

        if not self.should_succeed:
            return {
                "message_id": None,
                "status": "failed",
                "error": self.failure_reason,
            }

        message_id = f"email-{uuid4().hex[:12]}"
        with self._lock:
            self.sent_emails.append(
                {
                    "message_id": message_id,
                    "to": to,
                    "subject": subject,
                    "body": body,
                    "html_body": html_body,
                    "headers": dict(headers or {}),
                }
            )

        return {"message_id": message_id, "status": "sent"}

    def sent_to(self, address: str) -> list[dict]:
        with self._lock:
            return [email for email in self.sent_emails if email["to"] == address]

    def reset(self):
        """Clear sent emails (useful between tests)."""
        with self._lock:
            self.sent_emails.clear()
        self.should_succeed = True
        self.failure_reason = "Email delivery failed"
        self.raise_error = None

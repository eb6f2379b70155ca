"""Fake webhook adapter — records posted payloads instead of calling out."""

import threading
from uuid import uuid4

from notifications.channel.webhook_port import WebhookPort


class FakeWebhookAdapter(WebhookPort):
    def __init__(self):
        self._lock = threading.Lock()
        self.posted: list[dict] = []
        self.should_succeed = True
        self.failure_reason = "Webhook delivery failed"
        self.status_code = 500
        self.raise_error: Exception | None = None

    def configure(
        self,
        should_succeed: bool = True,
        failure_reason: str = "Webhook delivery failed",
        status_code: int = 500,
        raise_error: Exception | None = None,
    ):
        """Make subsequent posts fail with ``status_code`` or raise ``raise_error``."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason
        self.status_code = status_code
        self.raise_error = raise_error

    def post(self, url: str, payload: dict, headers: dict | None = None) -> dict:
        if self.raise_error is not None:
            raise self.raise_error

        if not self.should_succeed:
            return {
                "message_id": None,
                "status": "failed",
                "status_code": self.status_code,
                "error": self.failure_reason,
            }

        message_id = f"webhook-{uuid4().hex[:12]}"
        with self._lock:
            self.posted.append(
                {
                    "message_id": message_id,
                    "url": url,
                    "payload": payload,
                    "headers": dict(headers or {}),
                }
            )

        return {"message_id": message_id, "status": "sent", "status_code": 200}

    def posted_to(self, url: str) -> list[dict]:
        with self._lock:
            return [call for call in self.posted if call["url"] == url]

    def reset(self):
        with self._lock:
            self.posted.clear()
        self.should_succeed = True
        self.failure_reason = "Webhook delivery failed"
        self.status_code = 500
        self.raise_error = None

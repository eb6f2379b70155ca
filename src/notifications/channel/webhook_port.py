"""Webhook channel port — POSTs a JSON notification payload to a subscriber's endpoint."""

from abc import ABC, abstractmethod


class WebhookPort(ABC):
    @abstractmethod
    def post(self, url: str, payload: dict, headers: dict | None = None) -> dict:
        """Deliver ``payload`` as a JSON body to ``url``.

        Returns:
            dict with keys: message_id, status ("sent" or "failed"), status_code (optional), error (optional)
        """
        ...

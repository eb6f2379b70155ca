"""Email channel port — what the delivery executor needs from an email provider."""

from abc import ABC, abstractmethod


class EmailPort(ABC):
    """Sends one rendered notification email.

    Implementations report provider failures in the returned dict rather
    than raising; an exception is treated as an unexpected failure.
    """

    @abstractmethod
    def send(
        self,
        to: str,
        subject: str,
        body: str,
        html_body: str | None = None,
        headers: dict | None = None,
    ) -> dict:
        """Send an email.

        ``headers`` carries correlation metadata (message id, correlation id)
        for providers that support custom headers.

        Returns:
            dict with keys: message_id, status ("sent" or "failed"), error (optional)
        """
        ...

"""Queue transport registry — one shared transport per process.

Uses the in-memory transport by default; a broker-backed transport is
installed with ``set_transport()`` at process start-up.
"""

import threading

_transport = None
_lock = threading.Lock()


def get_transport():
    """Return the process-wide queue transport, creating the in-memory one on first use."""
    global _transport
    with _lock:
        if _transport is None:
            from notifications.messaging.memory import InMemoryQueueTransport
            from notifications.settings import get_settings

            settings = get_settings()
            _transport = InMemoryQueueTransport(
                max_message_bytes=settings.max_message_bytes,
                max_batch_bytes=settings.max_batch_bytes,
                max_batch_messages=settings.max_batch_messages,
                visibility_timeout=settings.visibility_timeout_seconds,
                retry_delay=settings.retry_delay_seconds,
                history_limit=settings.settlement_history_limit,
            )
        return _transport


def set_transport(transport) -> None:
    global _transport
    with _lock:
        _transport = transport


def reset_transport():
    """Drop the shared transport (useful for testing)."""
    set_transport(None)

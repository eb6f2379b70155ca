"""Channel adapter registry — email and webhook senders used by the delivery executor.

Provides singleton access to channel adapters. Uses fake adapters by
default; a real provider is plugged in with ``register_channel()`` at
process start-up.
"""

import threading

EMAIL = "Email"
WEBHOOK = "Webhook"

_channel_instances: dict[str, object] = {}
_lock = threading.Lock()


def get_channel(channel_type: str):
    """Return the configured channel adapter (singleton per channel type).

    Args:
        channel_type: "Email" or "Webhook"
    """
    with _lock:
        if channel_type not in _channel_instances:
            if channel_type == EMAIL:
                from notifications.channel.fake_email import FakeEmailAdapter

                _channel_instances[channel_type] = FakeEmailAdapter()
            elif channel_type == WEBHOOK:
                from notifications.channel.fake_webhook import FakeWebhookAdapter

                _channel_instances[channel_type] = FakeWebhookAdapter()
            else:
                raise ValueError(f"Unknown channel type: {channel_type}")

        return _channel_instances[channel_type]


def register_channel(channel_type: str, adapter) -> None:
    """Install a specific adapter for a channel type."""
    if channel_type not in (EMAIL, WEBHOOK):
        raise ValueError(f"Unknown channel type: {channel_type}")
    with _lock:
        _channel_instances[channel_type] = adapter


def reset_channels():
    """Reset all channel singletons (useful for testing)."""
    with _lock:
        _channel_instances.clear()

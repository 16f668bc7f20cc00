"""Channel adapter registry: pluggable push dispatch.

Uses the fake adapter by default; a real provider (FCM, OneSignal) is
selected with the PUSH_ADAPTER environment variable.
"""

import os

_channel_instances: dict[str, object] = {}

PUSH = "push"


def get_channel(channel_type: str = PUSH):
    """Return the configured channel adapter (singleton per channel type)."""
    if channel_type not in _channel_instances:
        if channel_type != PUSH:
            raise ValueError(f"Unknown channel type: {channel_type}")

        adapter = os.environ.get("PUSH_ADAPTER", "fake")
        if adapter == "fake":
            from tracking.channel.fake_push import FakePushAdapter

            _channel_instances[channel_type] = FakePushAdapter()
        else:
            raise ValueError(f"Unknown push adapter: {adapter}")

    return _channel_instances[channel_type]


def reset_channels():
    """Reset all channel singletons (useful for testing)."""
    _channel_instances.clear()

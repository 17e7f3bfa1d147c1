"""Channel adapter registry — SMS and email dispatch.

Fake adapters by default; SMS_ADAPTER=http selects the HTTP SMS gateway
(SMS_BASE_URL, SMS_API_KEY, SMS_SENDER_ID).
"""

import os

SMS = "SMS"
EMAIL = "Email"

_channel_instances: dict[str, object] = {}


def get_channel(channel_type: str):
    """Return the configured channel adapter (singleton per channel type)."""
    if channel_type not in _channel_instances:
        if channel_type == SMS:
            adapter = os.environ.get("SMS_ADAPTER", "fake")
            if adapter == "http":
                from allocation.channel.http_sms import HttpSMSAdapter

                _channel_instances[channel_type] = HttpSMSAdapter(
                    base_url=os.environ["SMS_BASE_URL"],
                    api_key=os.environ.get("SMS_API_KEY", ""),
                    sender_id=os.environ.get("SMS_SENDER_ID", "STRFLW"),
                )
            else:
                from allocation.channel.fake_sms import FakeSMSAdapter

                _channel_instances[channel_type] = FakeSMSAdapter()
        elif channel_type == EMAIL:
            from allocation.channel.fake_email import FakeEmailAdapter

            _channel_instances[channel_type] = FakeEmailAdapter()
        else:
            raise ValueError(f"Unknown channel type: {channel_type}")

    return _channel_instances[channel_type]


def reset_channels():
    """Reset all channel singletons (useful for testing)."""
    _channel_instances.clear()

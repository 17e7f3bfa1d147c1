"""Fake SMS adapter — keeps sent messages in memory for assertions."""

from uuid import uuid4

from allocation.channel.sms_port import SMSPort


class FakeSMSAdapter(SMSPort):
    def __init__(self):
        self.sent_messages: list[dict] = []
        self.should_succeed = True
        self.raise_error = False
        self.failure_reason = "SMS delivery failed"

    def configure(self, should_succeed: bool = True, failure_reason: str = "SMS delivery failed", raise_error: bool = False):
        """``raise_error`` simulates a gateway outage instead of a failed send."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason
        self.raise_error = raise_error

    def send(self, to: str, body: str) -> dict:
        if self.raise_error:
            raise ConnectionError(self.failure_reason)
        if not self.should_succeed:
            return {"message_id": None, "status": "failed", "error": self.failure_reason}

        message_id = f"sms-{uuid4().hex[:12]}"
        self.sent_messages.append({"message_id": message_id, "to": to, "body": body})
        return {"message_id": message_id, "status": "sent"}

    def reset(self):
        self.sent_messages.clear()
        self.should_succeed = True
        self.raise_error = False
        self.failure_reason = "SMS delivery failed"

"""SMS gateway adapter over HTTP.

Notifications are best effort: timeouts and HTTP errors come back as a
"failed" result and are never retried.
"""

import httpx
import structlog

from allocation.channel.sms_port import SMSPort

logger = structlog.get_logger(__name__)


class HttpSMSAdapter(SMSPort):
    def __init__(
        self,
        base_url: str,
        api_key: str,
        sender_id: str,
        timeout: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.sender_id = sender_id
        self.timeout = timeout
        self.transport = transport

    def send(self, to: str, body: str) -> dict:
        payload = {"sender": self.sender_id, "to": to, "message": body}
        headers = {"Authorization": f"Bearer {self.api_key}"}
        try:
            with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
                response = client.post(f"{self.base_url}/messages", json=payload, headers=headers)
        except httpx.HTTPError as exc:
            logger.warning("SMS gateway unreachable", to=to, error=str(exc))
            return {"message_id": None, "status": "failed", "error": str(exc)}

        if response.status_code >= 400:
            return {"message_id": None, "status": "failed", "error": f"HTTP {response.status_code}"}
        data = response.json()
        return {"message_id": data.get("message_id") or data.get("id"), "status": "sent"}

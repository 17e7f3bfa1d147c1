"""SMS channel port."""

from abc import ABC, abstractmethod


class SMSPort(ABC):
    @abstractmethod
    def send(self, to: str, body: str) -> dict:
        """Send an SMS message.

        Returns:
            dict with keys: message_id, status ("sent" or "failed"), error (optional)
        """
        ...

"""NotificationLog aggregate — operator-facing record of unattended runs.

The inventory feed writes one entry per processed page, per failure and per
completed run, so operators can see what the scheduled sync did without
reading application logs.
"""

import json
from datetime import UTC, datetime
from enum import Enum

from protean import handle
from protean.fields import Boolean, DateTime, Identifier, String, Text
from protean.utils.globals import current_domain

from allocation.domain import allocation


class LogType(Enum):
    INFO = "info"
    ERROR = "error"


@allocation.aggregate
class NotificationLog:
    title = String(required=True, max_length=255)
    details = Text()  # JSON: {"markdown": "..."}
    log_type = String(choices=LogType, default=LogType.INFO.value)
    viewed = Boolean(default=False)
    source = String(max_length=100)
    created_at = DateTime()

    @classmethod
    def record(cls, title: str, markdown: str, success: bool, source: str = "inventory_feed"):
        return cls(
            title=title,
            details=json.dumps({"markdown": markdown}),
            log_type=(LogType.INFO if success else LogType.ERROR).value,
            viewed=False,
            source=source,
            created_at=datetime.now(UTC),
        )

    @property
    def markdown(self) -> str:
        return json.loads(self.details).get("markdown", "") if self.details else ""

    def mark_viewed(self) -> None:
        self.viewed = True


@allocation.command(part_of="NotificationLog")
class RecordNotificationLog:
    title = String(required=True, max_length=255)
    markdown = Text()
    success = Boolean(default=True)
    source = String(max_length=100)


@allocation.command(part_of="NotificationLog")
class MarkNotificationLogViewed:
    log_id = Identifier(required=True)


@allocation.command_handler(part_of=NotificationLog)
class NotificationLogHandler:
    @handle(RecordNotificationLog)
    def record_notification_log(self, command):
        entry = NotificationLog.record(
            title=command.title,
            markdown=command.markdown or "",
            success=command.success,
            source=command.source or "inventory_feed",
        )
        current_domain.repository_for(NotificationLog).add(entry)
        return str(entry.id)

    @handle(MarkNotificationLogViewed)
    def mark_viewed(self, command):
        repo = current_domain.repository_for(NotificationLog)
        entry = repo.get(command.log_id)
        entry.mark_viewed()
        repo.add(entry)

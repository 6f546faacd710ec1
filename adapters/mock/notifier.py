"""
Mock notifier

Test double for INotifier that records every message.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any


@dataclass
class NotificationRecord:
    """One recorded notification"""

    message: str
    level: str
    extra: dict[str, Any] | None
    timestamp: datetime
    sent: bool


class MockNotifier:
    """Mock notifier

    Implements INotifier and keeps every notification for assertions.

    Example:
    ```python
    notifier = MockNotifier()

    await notifier.send("Request approved", level="INFO")

    assert notifier.message_count == 1
    assert notifier.last_notification.message == "Request approved"
    ```
    """

    def __init__(self, should_fail: bool = False, should_raise: bool = False):
        """
        Args:
            should_fail: Every send returns False
            should_raise: Every send raises RuntimeError (broken transport)
        """
        self.should_fail = should_fail
        self.should_raise = should_raise
        self.notifications: list[NotificationRecord] = []

    async def send(
        self,
        message: str,
        level: str = "INFO",
        extra: dict[str, Any] | None = None,
    ) -> bool:
        if self.should_raise:
            raise RuntimeError("notifier transport failure")

        self.notifications.append(
            NotificationRecord(
                message=message,
                level=level,
                extra=extra,
                timestamp=datetime.now(timezone.utc),
                sent=not self.should_fail,
            )
        )
        return not self.should_fail

    async def send_request_alert(
        self,
        request_id: str,
        title: str,
        event: str,
        status: str,
        amount: str,
        actor: str | None = None,
        level: str = "INFO",
    ) -> bool:
        message = f"[{event}] {title} ({request_id}) -> {status}, {amount}"
        if actor:
            message = f"{message} by {actor}"

        return await self.send(
            message=message,
            level=level,
            extra={
                "request_id": request_id,
                "event": event,
                "status": status,
                "amount": amount,
                "actor": actor,
            },
        )

    # -------------------------------------------------------------------------
    # Test helpers
    # -------------------------------------------------------------------------

    def clear(self) -> None:
        self.notifications.clear()

    def get_by_level(self, level: str) -> list[NotificationRecord]:
        return [n for n in self.notifications if n.level == level]

    def get_warnings(self) -> list[NotificationRecord]:
        return self.get_by_level("WARNING")

    def get_by_event(self, event: str) -> list[NotificationRecord]:
        return [
            n for n in self.notifications
            if n.extra is not None and n.extra.get("event") == event
        ]

    @property
    def last_notification(self) -> NotificationRecord | None:
        return self.notifications[-1] if self.notifications else None

    @property
    def message_count(self) -> int:
        return len(self.notifications)

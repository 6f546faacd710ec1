"""
Adapter interfaces

Protocol-based so implementations can be swapped for mocks.
Every implementation must satisfy these Protocols.
"""

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class INotifier(Protocol):
    """Notification service interface

    Informational side channel for workflow transitions and warnings.
    A failed send is reported through the return value and never raised.
    """

    async def send(
        self,
        message: str,
        level: str = "INFO",
        extra: dict[str, Any] | None = None,
    ) -> bool:
        """Send a notification

        Args:
            message: Notification text
            level: INFO, WARNING, ERROR, CRITICAL
            extra: Additional key/value context

        Returns:
            True if delivered
        """
        ...

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
        """Send a formatted funding-request alert

        Args:
            request_id: Request ID
            title: Project title
            event: Workflow event (submit, approve, ...)
            status: Status after the event
            amount: Estimated cost
            actor: Who triggered the event
            level: Notification level

        Returns:
            True if delivered
        """
        ...

"""
Change feed

In-process publish/subscribe used by the stores to announce committed
writes. subscribe() hands back a Subscription; the caller owns it and must
call unsubscribe() when done.

Callbacks are awaited one after another in subscription order. A failing
callback is logged and does not stop delivery to the others. No ordering is
promised between different feeds.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Protocol

from core.utils.timezone import now_utc

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChangeEvent:
    """One committed change

    Attributes:
        source: Feed name ("ledger", "requests")
        action: What happened ("appended", "removed", "approved", ...)
        record_id: Affected record
        data: Extra context
    """

    source: str
    action: str
    record_id: str
    data: dict[str, Any] = field(default_factory=dict)
    ts: Any = field(default_factory=now_utc)


ChangeCallback = Callable[[ChangeEvent], Awaitable[None]]


class _SubscriptionOwner(Protocol):
    def _remove(self, sub: "Subscription") -> None: ...


class Subscription:
    """Subscription handle

    unsubscribe() is idempotent.
    """

    def __init__(self, feed: _SubscriptionOwner, callback: Callable[..., Awaitable[None]]):
        self._feed = feed
        self._callback = callback
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    @property
    def callback(self) -> Callable[..., Awaitable[None]]:
        return self._callback

    def unsubscribe(self) -> None:
        if not self._active:
            return
        self._active = False
        self._feed._remove(self)


class ChangeFeed:
    """Change feed

    Args:
        name: Feed name (used in logs and ChangeEvent.source)

    Example:
    ```python
    feed = ChangeFeed("ledger")

    async def on_change(event: ChangeEvent) -> None:
        print(event.action, event.record_id)

    sub = feed.subscribe(on_change)
    await feed.publish("appended", "tx-123")
    sub.unsubscribe()
    ```
    """

    def __init__(self, name: str):
        self.name = name
        self._subscriptions: list[Subscription] = []
        self._error_count = 0

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    @property
    def error_count(self) -> int:
        return self._error_count

    def subscribe(self, callback: ChangeCallback) -> Subscription:
        sub = Subscription(self, callback)
        self._subscriptions.append(sub)
        logger.debug(f"{self.name}: subscriber added ({len(self._subscriptions)})")
        return sub

    def _remove(self, sub: Subscription) -> None:
        if sub in self._subscriptions:
            self._subscriptions.remove(sub)
            logger.debug(f"{self.name}: subscriber removed ({len(self._subscriptions)})")

    async def publish(
        self,
        action: str,
        record_id: str,
        data: dict[str, Any] | None = None,
    ) -> ChangeEvent:
        """Deliver a change to every active subscriber

        Returns:
            The published ChangeEvent
        """
        event = ChangeEvent(
            source=self.name,
            action=action,
            record_id=record_id,
            data=data or {},
        )

        # snapshot: callbacks may unsubscribe while we iterate
        for sub in list(self._subscriptions):
            if not sub.active:
                continue
            try:
                await sub.callback(event)
            except Exception as e:
                self._error_count += 1
                logger.error(
                    f"{self.name}: subscriber failed: {e}",
                    extra={"action": action, "record_id": record_id},
                )

        return event

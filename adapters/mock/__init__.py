"""
Mock adapters

Test implementations that satisfy the adapter Protocols.
"""

from adapters.mock.notifier import MockNotifier, NotificationRecord

__all__ = [
    "MockNotifier",
    "NotificationRecord",
]

"""
Adapter layer

Integration with external services (database, notifications).
Protocol-based interfaces allow mock replacement.
"""

from adapters.interfaces import INotifier

__all__ = [
    "INotifier",
]

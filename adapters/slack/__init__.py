"""
Slack adapter

Notifications through a Slack webhook (INotifier).
"""

from adapters.slack.notifier import SlackNotifier

__all__ = [
    "SlackNotifier",
]

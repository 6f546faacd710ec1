"""
Slack notifier

Sends notifications through a Slack incoming webhook.
Implements the INotifier Protocol.
"""

import logging
from typing import Any

import httpx

from core.utils.timezone import format_local, now_utc

logger = logging.getLogger(__name__)


LEVEL_EMOJI = {
    "INFO": ":white_check_mark:",
    "WARNING": ":warning:",
    "ERROR": ":x:",
    "CRITICAL": ":rotating_light:",
}

LEVEL_COLOR = {
    "INFO": "#36A64F",
    "WARNING": "#FFA500",
    "ERROR": "#FF0000",
    "CRITICAL": "#8B0000",
}

EVENT_EMOJI = {
    "create": ":memo:",
    "submit": ":inbox_tray:",
    "approve": ":moneybag:",
    "reject": ":no_entry_sign:",
    "mark_complete": ":hourglass_flowing_sand:",
    "verify": ":trophy:",
}


class SlackNotifier:
    """Slack notifier

    Example:
    ```python
    notifier = SlackNotifier(webhook_url="https://hooks.slack.com/...")

    await notifier.send("Treasury web started", level="INFO")
    await notifier.send_request_alert(
        request_id="pr-1a2b3c4d5e6f",
        title="Beach clean-up",
        event="approve",
        status="ACTIVE",
        amount="250",
    )
    ```
    """

    def __init__(
        self,
        webhook_url: str,
        channel: str | None = None,
        username: str = "Treasury",
        footer: str = "Treasury",
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Args:
            webhook_url: Slack incoming webhook URL
            channel: Channel override (default: the webhook's channel)
            username: Sender name
            footer: Footer label (organisation name)
            timeout: HTTP timeout (seconds)
            transport: Custom httpx transport (tests)
        """
        if not webhook_url:
            raise ValueError("webhook_url is required")

        self.webhook_url = webhook_url
        self.channel = channel
        self.username = username
        self.footer = footer
        self.timeout = timeout
        self._transport = transport

        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """HTTP client (lazy)"""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self.timeout, transport=self._transport)
        return self._client

    async def close(self) -> None:
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def send(
        self,
        message: str,
        level: str = "INFO",
        extra: dict[str, Any] | None = None,
    ) -> bool:
        """Send a notification

        Args:
            message: Text
            level: INFO, WARNING, ERROR, CRITICAL
            extra: Shown as attachment fields

        Returns:
            True if Slack accepted it
        """
        emoji = LEVEL_EMOJI.get(level, ":bell:")
        color = LEVEL_COLOR.get(level, "#808080")

        payload: dict[str, Any] = {
            "username": self.username,
            "attachments": [
                {
                    "color": color,
                    "text": f"{emoji} *[{level}]* {message}",
                    "footer": f"{self.footer} | {self._format_timestamp()}",
                }
            ],
        }

        if self.channel:
            payload["channel"] = self.channel

        if extra:
            payload["attachments"][0]["fields"] = [
                {"title": key, "value": str(value), "short": True}
                for key, value in extra.items()
                if value is not None
            ]

        return await self._send_payload(payload)

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
        """Funding request alert (formatted)"""
        emoji = EVENT_EMOJI.get(event, ":bell:")

        fields = [
            {"title": "Request", "value": request_id, "short": True},
            {"title": "Status", "value": status, "short": True},
            {"title": "Amount", "value": amount, "short": True},
        ]
        if actor:
            fields.append({"title": "By", "value": actor, "short": True})

        payload: dict[str, Any] = {
            "username": self.username,
            "attachments": [
                {
                    "color": LEVEL_COLOR.get(level, "#808080"),
                    "title": f"{emoji} {event}: {title}",
                    "fields": fields,
                    "footer": f"{self.footer} | {self._format_timestamp()}",
                }
            ],
        }

        if self.channel:
            payload["channel"] = self.channel

        return await self._send_payload(payload)

    async def _send_payload(self, payload: dict[str, Any]) -> bool:
        """POST the payload to the webhook"""
        try:
            client = await self._get_client()
            response = await client.post(self.webhook_url, json=payload)

            if response.status_code == 200:
                logger.debug("Slack notification sent")
                return True

            logger.warning(
                "Slack notification rejected: status=%s, body=%s",
                response.status_code,
                response.text,
            )
            return False

        except httpx.TimeoutException:
            logger.error("Slack notification timed out")
            return False
        except httpx.HTTPError as e:
            logger.error("Slack notification HTTP error: %s", e)
            return False

    def _format_timestamp(self) -> str:
        return format_local(now_utc(), "%Y-%m-%d %H:%M:%S LKT")

    # -------------------------------------------------------------------------
    # Context manager
    # -------------------------------------------------------------------------

    async def __aenter__(self) -> "SlackNotifier":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

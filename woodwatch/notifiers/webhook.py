"""
Webhook notifier for Woodwatch.
"""

import platform

import requests

from woodwatch import __version__
from woodwatch.core import Event, Notifier
from woodwatch.logging_config import get_logger
from woodwatch.registry import register_notifier

logger = get_logger(__name__)

DEFAULT_TIMEOUT = 10


def user_agent() -> str:
    """User-Agent sent with every webhook request."""
    return f"woodwatch/{__version__} ({platform.system().lower()}; {platform.machine()})"


@register_notifier("webhook")
class WebhookNotifier(Notifier):
    """
    POSTs events to a webhook URL as JSON objects.

    Config:
        headers: Optional extra HTTP headers
        timeout: Request timeout in seconds (default: 10)
    """

    def build_payload(self, event: Event) -> dict:
        """JSON body for an event."""
        return event.to_payload()

    def notify(self, event: Event, target: str) -> bool:
        """Send an event to the webhook at ``target``."""
        try:
            event.validate()
        except ValueError as e:
            logger.warning("Not sending invalid event to %s: %s", target, e)
            return False

        headers = {
            "Content-Type": "application/json",
            "User-Agent": user_agent(),
            **self.config.get("headers", {}),
        }
        timeout = self.config.get("timeout", DEFAULT_TIMEOUT)

        try:
            response = requests.post(
                target,
                json=self.build_payload(event),
                headers=headers,
                timeout=timeout,
            )
            response.raise_for_status()
            logger.info("Webhook event '%s' sent to %s", event.title, target)
            return True
        except requests.RequestException:
            logger.error(
                "Failed to send webhook event '%s' to %s",
                event.title,
                target,
                exc_info=True
            )
            return False


__all__ = ["WebhookNotifier"]

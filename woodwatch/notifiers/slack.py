"""
Slack notifier for Woodwatch.
"""

from typing import Any, ClassVar

from woodwatch.core import Event
from woodwatch.notifiers.webhook import WebhookNotifier
from woodwatch.registry import register_notifier
from woodwatch.states import DOWN, UP


@register_notifier("slack")
class SlackNotifier(WebhookNotifier):
    """
    Posts events to a Slack incoming webhook.

    Peer names may contain Slack emoji codes such as ``:fire:``; they are
    passed through untouched.

    Config:
        headers: Optional extra HTTP headers
        timeout: Request timeout in seconds (default: 10)
        username: Optional bot username override
    """

    STATE_COLORS: ClassVar[dict[str, str]] = {
        UP: "good",
        DOWN: "danger",
    }

    def build_payload(self, event: Event) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "text": event.title,
            "attachments": [
                {
                    "text": event.text,
                    "color": self.STATE_COLORS.get(event.new_state, "warning"),
                    "ts": int(event.timestamp.timestamp()),
                }
            ],
        }
        if "username" in self.config:
            payload["username"] = self.config["username"]
        return payload


__all__ = ["SlackNotifier"]

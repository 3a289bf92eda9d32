"""
Woodwatch Notifiers Submodule.

Importing this package registers every built-in notifier type.
"""

from woodwatch.notifiers.slack import SlackNotifier
from woodwatch.notifiers.webhook import WebhookNotifier

__all__ = ["SlackNotifier", "WebhookNotifier"]

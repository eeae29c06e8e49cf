"""Chainable Slack / Microsoft Teams notifications over webhooks."""

import logging
from typing import Optional

from chatnotify.channels.base import MessageBuilder, Notifier
from chatnotify.channels.detect import detect_provider
from chatnotify.channels.slack import SlackMessage, SlackNotifier
from chatnotify.channels.teams import TeamsMessage, TeamsNotifier
from chatnotify.channels.validate import VALID_PROVIDERS, suggest_provider
from chatnotify.config import Settings
from chatnotify.exceptions import (
    ConfigurationError,
    MessageAlreadySentError,
    MessageValidationError,
    NotifyError,
)
from chatnotify.formatting import FormatOptions
from chatnotify.package_info import PackageInfo
from chatnotify.transport import WebhookTransport

logger = logging.getLogger(__name__)

PROVIDERS: dict[str, type[Notifier]] = {
    "slack": SlackNotifier,
    "teams": TeamsNotifier,
}


def resolve_provider(settings: Settings) -> str:
    """
    Pick the provider for a configuration.

    Priority:
      1. Explicit ``provider`` setting
      2. Provider detected from a configured Slack webhook
      3. Teams, if any Teams webhook is configured
      4. Slack
    """
    if settings.provider:
        provider = settings.provider.lower()
        if provider not in VALID_PROVIDERS:
            suggestion = suggest_provider(provider)
            hint = f" Did you mean '{suggestion}'?" if suggestion else ""
            raise ConfigurationError(f"Unknown provider: {settings.provider}.{hint}")
        return provider

    slack = settings.slack
    for url in [slack.webhook, *slack.webhooks.values()]:
        if url:
            return detect_provider(url) or "slack"
    if slack.token:
        return "slack"
    if any(settings.teams.webhooks.values()):
        return "teams"
    return "slack"


def get_notifier(settings: Optional[Settings] = None, **kwargs) -> Notifier:
    """Build the notifier selected by *settings*; kwargs go to its constructor."""
    settings = settings if settings is not None else Settings()
    provider = resolve_provider(settings)
    logger.debug("Using %s notifier", provider)
    return PROVIDERS[provider](settings=settings, **kwargs)


__all__ = [
    "ConfigurationError",
    "FormatOptions",
    "MessageAlreadySentError",
    "MessageBuilder",
    "MessageValidationError",
    "Notifier",
    "NotifyError",
    "PackageInfo",
    "Settings",
    "SlackMessage",
    "SlackNotifier",
    "TeamsMessage",
    "TeamsNotifier",
    "WebhookTransport",
    "detect_provider",
    "get_notifier",
    "resolve_provider",
]

"""Microsoft Teams adapter using connector MessageCards."""

import copy
import logging
from typing import Any, Optional, Union

from chatnotify.channels import StatsBlock, json_payload
from chatnotify.channels.base import (
    MessageBuilder,
    Notifier,
    format_traceback,
    mutator,
    timestamp,
)
from chatnotify.channels.validate import validate_webhook_url
from chatnotify.config import DEFAULT_TEAMS_CHANNEL, DEFAULT_TEAMS_WEBHOOK_NAME
from chatnotify.exceptions import ConfigurationError, MessageValidationError
from chatnotify.formatting import TEAMS_MARKUP, preserve_whitespace

logger = logging.getLogger(__name__)

DEFAULT_THEME_COLOR = "439FE0"  # blue
ERROR_THEME_COLOR = "F00"  # red


def open_uri_action(name: str, uri: str) -> dict:
    return {
        "@type": "OpenUri",
        "name": name,
        "targets": [{"os": "default", "uri": uri}],
    }


def split_channel(channel: str) -> tuple[str, str]:
    """``<channelName>[.<webhookName>]`` -> (channelName, webhookName)."""
    name, _, webhook_name = channel.partition(".")
    return name, webhook_name or DEFAULT_TEAMS_WEBHOOK_NAME


class TeamsMessage(MessageBuilder):
    """Builder for a Teams MessageCard."""

    notifier: "TeamsNotifier"

    def __init__(self, notifier, text=None, channel=None):
        self._theme_color = DEFAULT_THEME_COLOR
        self._title: Optional[str] = None
        super().__init__(notifier, text=text, channel=channel)

    @mutator
    def color(self, color: str):
        self._theme_color = color.replace("#", "")

    @mutator
    def title(self, title: str):
        self._title = title

    @mutator
    def icon(self, link_or_emoji: str):
        """MessageCards have no sender icon; kept for interface parity."""

    @mutator
    def username(self, name: str):
        """Connector cards are posted as the connector; kept for interface parity."""

    def section(self, sections: Union[dict, list[dict]]):
        return self.attachment(sections)

    @mutator
    def button(self, label: str, url: str, style: Optional[str] = None):
        # MessageCard buttons are not styled
        self._actions.append(open_uri_action(label, url))

    def _stats_attachment(self, block: StatsBlock, extra_props: dict) -> dict:
        return {
            "title": block.title,
            "facts": [
                {"name": f.title, "value": preserve_whitespace(f.value)}
                for f in block.fields
            ],
            **extra_props,
        }

    def _add_error(self, err: BaseException, *, label: str, title: str) -> None:
        self.color(ERROR_THEME_COLOR)
        self.title(f"Error: {err}")
        self.text(preserve_whitespace(format_traceback(err)))
        issue_url = self.notifier.issue_url(err, label=label, title=title)
        if issue_url:
            self.action(open_uri_action("Create an issue for this error?", issue_url))

    @mutator
    def error_section(self, err: BaseException, *, label: str = "", title: str = ""):
        """Add an error as its own section, leaving the card's title and text alone."""
        self._errors.append(err)
        section = {
            "startGroup": True,
            "activityTitle": f"{self.notifier.format('Error')}: {err}",
            "activityText": preserve_whitespace(format_traceback(err)),
        }
        issue_url = self.notifier.issue_url(err, label=label, title=title)
        if issue_url:
            section["potentialAction"] = [
                open_uri_action("Create an issue for this error?", issue_url)
            ]
        self.section(section)

    def _validate(self) -> None:
        if not self._summary and not self._text:
            raise MessageValidationError("Either summary or text is required")
        if not self.notifier.log_condition():
            self.notifier.resolve_webhook(self._channel)

    def build_card(self, extra_props: Optional[dict] = None) -> dict:
        card = {
            "@type": "MessageCard",
            "@context": "https://schema.org/extensions",
            "summary": self._summary,
            "themeColor": self._theme_color,
            "title": self._title,
            "text": self._text,
            "sections": copy.deepcopy(self._attachments),
            "potentialAction": copy.deepcopy(self._actions),
        }
        card.update(extra_props or {})
        return {k: v for k, v in card.items() if v is not None}

    async def _deliver(self, *, default_attachment: bool, extra_props: dict) -> None:
        await self.notifier.post_message(
            self.build_card(extra_props),
            channel=self._channel,
            default_attachment=default_attachment,
        )


class TeamsNotifier(Notifier):
    """Send MessageCards to Teams incoming webhooks, one webhook per channel."""

    dialect = TEAMS_MARKUP

    _default_channel: Optional[str] = None

    @property
    def provider_type(self) -> str:
        return "teams"

    @property
    def default_channel(self) -> str:
        return self._default_channel or self.settings.teams.channel or DEFAULT_TEAMS_CHANNEL

    @default_channel.setter
    def default_channel(self, channel: str) -> None:
        self._default_channel = channel

    def message(self, text: Optional[str] = None, channel: Optional[str] = None) -> TeamsMessage:
        return TeamsMessage(self, text=text, channel=channel)

    def set_webhook(self, url: str, channel: Optional[str] = None) -> None:
        """
        Register a webhook for ``<channelName>[.<webhookName>]``,
        default: the default channel's ``default`` webhook.
        """
        err = validate_webhook_url(self.provider_type, url)
        if err:
            raise ConfigurationError(err)
        name, webhook_name = split_channel(channel or self.default_channel)
        self.settings.teams.webhooks.setdefault(name, {})[webhook_name] = url

    def webhook_for(self, channel: str) -> Optional[str]:
        name, webhook_name = split_channel(channel)
        return self.settings.teams.webhooks.get(name, {}).get(webhook_name)

    def resolve_webhook(self, channel: Optional[str] = None) -> str:
        channel = channel or self.default_channel
        webhook_url = self.webhook_for(channel)
        if not webhook_url:
            raise ConfigurationError(f'No webhook url for channel: "{channel}"')
        return webhook_url

    def default_sections(self) -> list[dict]:
        ctx = self.runtime_context()
        subtitle = " | ".join(p for p in (ctx.footer, timestamp()) if p)
        return [{
            "activityTitle": "App Info:",
            "activitySubtitle": subtitle,
            "facts": [
                {"name": "Hostname", "value": ctx.hostname},
                {"name": "Environment", "value": ctx.environment},
            ],
        }]

    async def post_message(
        self,
        content: dict[str, Any],
        *,
        channel: Optional[str] = None,
        default_attachment: bool = True,
    ) -> None:
        """
        Send a MessageCard.

        Raises:
            ConfigurationError: no webhook is configured for the channel
        """
        # Do not modify the caller's card
        message = dict(content)
        message["sections"] = list(message.get("sections") or [])
        if default_attachment:
            message["sections"].extend(self.default_sections())

        if self.suppressed(message):
            return

        webhook_url = self.resolve_webhook(channel)
        await self.transport.send(json_payload(webhook_url, message), message)

"""Slack adapter: attachments, mrkdwn and the webhook / chat.postMessage delivery."""

import copy
import logging
import time
from typing import Any, Optional

from chatnotify.channels import StatsBlock, json_payload
from chatnotify.channels.base import MessageBuilder, Notifier, format_traceback, mutator
from chatnotify.channels.validate import validate_webhook_url
from chatnotify.config import DEFAULT_SLACK_CHANNEL, DEFAULT_SLACK_USERNAME
from chatnotify.exceptions import ConfigurationError
from chatnotify.formatting import SLACK_MARKUP, escape_slack_text

logger = logging.getLogger(__name__)

SLACK_API_URL = "https://slack.com/api/chat.postMessage"

STATS_COLOR = "#439FE0"  # blue


class SlackMessage(MessageBuilder):
    """Builder for a Slack message with attachments."""

    notifier: "SlackNotifier"

    @mutator
    def color(self, color: str):
        """Slack messages have no message-level color; kept for interface parity."""

    @mutator
    def title(self, title: str):
        """Slack messages have no title; kept for interface parity."""

    @mutator
    def username(self, name: str):
        self._extra_props["username"] = name

    @mutator
    def icon(self, link_or_emoji: str):
        """Use an emoji (``:robot_face:``) or an image URL as the sender icon."""
        if link_or_emoji.startswith(":"):
            self._extra_props["icon_emoji"] = link_or_emoji
        else:
            self._extra_props["icon_url"] = link_or_emoji

    @mutator
    def button(self, label: str, url: str, style: Optional[str] = None):
        button = {"type": "button", "text": label, "url": url}
        if style:
            button["style"] = style
        self._actions.append(button)

    def _stats_attachment(self, block: StatsBlock, extra_props: dict) -> dict:
        return {
            "color": STATS_COLOR,
            "fallback": block.title,
            "title": block.title,
            "fields": [
                {"title": f.title, "value": f.value, "short": f.short}
                for f in block.fields
            ],
            **extra_props,
        }

    def _add_error(self, err: BaseException, *, label: str, title: str) -> None:
        pretext = escape_slack_text(f"{self.notifier.format('Error')}: {err}")
        attachment = {
            "pretext": pretext,
            "fallback": pretext,
            "text": escape_slack_text(format_traceback(err)),
            "color": "danger",
        }
        issue_url = self.notifier.issue_url(err, label=label, title=title)
        if issue_url:
            attachment["actions"] = [{
                "type": "button",
                "text": "Create an issue for this error?",
                "style": "danger",
                "url": issue_url,
            }]
        self.attachment(attachment)

    def build_attachments(self) -> list[dict]:
        """Attachments as they will be sent, independent of the builder's state."""
        attachments = copy.deepcopy(self._attachments)
        if self._actions:
            attachments.append({"title": "", "actions": copy.deepcopy(self._actions)})
        if self._summary and attachments:
            attachments[0]["fallback"] = self._summary
        return attachments

    async def _deliver(self, *, default_attachment: bool, extra_props: dict) -> None:
        await self.notifier.post_message(
            self._text,
            channel=self._channel,
            attachments=self.build_attachments(),
            extra_props=extra_props,
            default_attachment=default_attachment,
        )


class SlackNotifier(Notifier):
    """Send messages to Slack through an incoming webhook or the Web API."""

    dialect = SLACK_MARKUP

    _username: Optional[str] = None

    @property
    def provider_type(self) -> str:
        return "slack"

    @property
    def username(self) -> str:
        """Username to send messages with, default: 'slackbot'."""
        return self._username or self.settings.slack.username or DEFAULT_SLACK_USERNAME

    @username.setter
    def username(self, name: str) -> None:
        self._username = name

    @property
    def default_channel(self) -> str:
        return self.settings.slack.channel or DEFAULT_SLACK_CHANNEL

    @staticmethod
    def escape_text(text: str) -> str:
        return escape_slack_text(text)

    def message(self, text: Optional[str] = None, channel: Optional[str] = None) -> SlackMessage:
        return SlackMessage(self, text=text, channel=channel)

    def set_webhook(self, url: str, channel: Optional[str] = None) -> None:
        """Webhook is given priority over the legacy token."""
        err = validate_webhook_url(self.provider_type, url)
        if err:
            raise ConfigurationError(err)
        if channel:
            self.settings.slack.webhooks[channel] = url
        else:
            self.settings.slack.webhook = url

    def set_token(self, token: str) -> None:
        self.settings.slack.token = token

    def webhook_for(self, channel: str) -> str:
        conf = self.settings.slack
        return conf.webhooks.get(channel) or conf.webhook

    def default_attachments(self) -> list[dict]:
        ctx = self.runtime_context()
        return [{
            "title": "App Info:",
            "fields": [
                {"title": "Hostname", "value": ctx.hostname, "short": True},
                {"title": "Environment", "value": ctx.environment, "short": True},
            ],
            "footer": ctx.footer,
            "ts": time.time(),
        }]

    async def post_message(
        self,
        content: Optional[str],
        *,
        channel: Optional[str] = None,
        attachments: Optional[list[dict]] = None,
        extra_props: Optional[dict[str, Any]] = None,
        default_attachment: bool = True,
    ) -> None:
        """
        Send a message to a Slack channel.

        Args:
            content: Message text
            channel: Default value is taken from config
            attachments: Attachments to send
            extra_props: Top-level keys that overwrite any other props
            default_attachment: Add an attachment with runtime info
        """
        channel = channel or self.default_channel
        final_attachments = list(attachments or [])
        if default_attachment:
            final_attachments.extend(self.default_attachments())

        message: dict[str, Any] = {
            "text": content,
            "channel": channel,
            "username": self.username,
            "attachments": final_attachments,
        }
        message.update(extra_props or {})

        if self.suppressed(message):
            return

        webhook = self.webhook_for(channel)
        if webhook:
            await self.transport.send(json_payload(webhook, message), message)
            return

        token = self.settings.slack.token
        if not token:
            logger.error("No Slack webhook or token configured, dropping message: %s", message)
            return

        await self.transport.send(
            json_payload(
                SLACK_API_URL,
                {**message, "token": token},
                headers={"Authorization": f"Bearer {token}"},
            ),
            message,
        )

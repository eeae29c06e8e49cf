"""Provider interface and shared message builder behaviour."""

import functools
import logging
import traceback
from abc import ABC, abstractmethod
from datetime import datetime
from functools import cached_property
from typing import Any, Callable, Mapping, Optional, Union
from urllib.parse import quote

from chatnotify.channels import StatsBlock
from chatnotify.channels.format_value import build_stats
from chatnotify.config import Settings
from chatnotify.context import RuntimeContext, collect_runtime_context
from chatnotify.exceptions import MessageAlreadySentError
from chatnotify.formatting import MarkupDialect, OptionsLike, format_text, format_url
from chatnotify.package_info import PackageInfo, load_package_info
from chatnotify.transport import WebhookTransport

logger = logging.getLogger(__name__)

# Characters encodeURIComponent leaves alone, so issue links stay readable
_URI_SAFE = "!~*'()"


def format_traceback(err: BaseException) -> str:
    return "".join(
        traceback.format_exception(type(err), err, err.__traceback__)
    ).rstrip("\n")


def timestamp() -> str:
    return datetime.now().strftime("%d/%m/%Y, %H:%M:%S")


class Notifier(ABC):
    """
    Common interface for all chat providers.

    A notifier owns the configuration, HTTP transport and package info
    used to deliver messages; builders created by ``message()`` are
    cheap, single-use and share nothing with each other.
    """

    dialect: MarkupDialect

    def __init__(
        self,
        settings: Optional[Settings] = None,
        transport: Optional[WebhookTransport] = None,
        package_info: Optional[PackageInfo] = None,
        log_condition: Optional[Callable[[], bool]] = None,
    ):
        self.settings = settings if settings is not None else Settings()
        self.transport = transport or WebhookTransport(timeout=self.settings.http_timeout)
        self._log_condition = log_condition
        if package_info is not None:
            self.package_info = package_info

    @property
    @abstractmethod
    def provider_type(self) -> str:
        ...

    @cached_property
    def package_info(self) -> PackageInfo:
        return load_package_info(self.settings.package_name)

    def log_condition(self) -> bool:
        """
        Whether messages should be logged instead of sent.
        Defaults to skipping delivery in the test environment.
        """
        if self._log_condition is not None:
            return self._log_condition()
        return self.settings.is_test

    def format(self, text: str, options: OptionsLike = None) -> str:
        """Format text in this provider's markup, bold by default."""
        return format_text(text, self.dialect, options)

    def format_url(self, url: str, text: str) -> str:
        return format_url(url, text, self.dialect)

    def runtime_context(self) -> RuntimeContext:
        return collect_runtime_context(self.settings.environment, self.package_info)

    def issue_url(self, err: BaseException, label: str = "", title: str = "") -> Optional[str]:
        """Link that opens a prefilled bug report, if a bug tracker is known."""
        package = self.package_info
        if not package.bugs_url:
            return None
        issue_title = f"[{label or type(err).__name__}] {title or err}"
        body = (
            f"Error encountered on {timestamp()}\n"
            f"App version: v{package.version}\n\n"
            f"Full Stack: {format_traceback(err)}"
        )
        return (
            f"{package.bugs_url}/new"
            f"?title={quote(issue_title, safe=_URI_SAFE)}"
            f"&body={quote(body, safe=_URI_SAFE)}"
            f"&labels=bug"
        )

    def suppressed(self, message: Mapping[str, Any]) -> bool:
        """Log *message* instead of sending it when ``log_condition()`` holds."""
        if not self.log_condition():
            return False
        label = self.provider_type.capitalize()
        logger.info(
            "%s message: %s", label, message,
            extra={"label": label, "payload": dict(message)},
        )
        return True

    @abstractmethod
    def message(self, text: Optional[str] = None, channel: Optional[str] = None) -> "MessageBuilder":
        """Start building a message."""
        ...

    @abstractmethod
    async def post_message(self, content: Any, **kwargs: Any) -> None:
        """Deliver a fully built message."""
        ...

    @abstractmethod
    def set_webhook(self, url: str, channel: Optional[str] = None) -> None:
        ...


def mutator(method):
    """Reject calls once the message was sent and return the builder for chaining."""

    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        self._ensure_building()
        method(self, *args, **kwargs)
        return self

    return wrapper


class MessageBuilder(ABC):
    """
    Chainable, single-use message under construction.

    Every mutator returns the builder. ``send()`` moves it to the sent
    state; mutating or sending it again raises MessageAlreadySentError.
    """

    def __init__(
        self,
        notifier: Notifier,
        text: Optional[str] = None,
        channel: Optional[str] = None,
    ):
        self.notifier = notifier
        self._text: Optional[str] = None
        self._channel: Optional[str] = None
        self._summary: Optional[str] = None
        self._attachments: list[dict] = []
        self._actions: list[dict] = []
        self._errors: list[BaseException] = []
        self._extra_props: dict[str, Any] = {}
        self._sent = False

        if channel:
            self.channel(channel)
        if text:
            self.text(text)

    @property
    def sent(self) -> bool:
        return self._sent

    @property
    def errors(self) -> tuple[BaseException, ...]:
        """Exceptions added through error() / error_section()."""
        return tuple(self._errors)

    def _ensure_building(self) -> None:
        if self._sent:
            raise MessageAlreadySentError("Message was already sent; build a new one")

    @mutator
    def text(self, text: str):
        self._text = text

    @mutator
    def channel(self, channel: str):
        self._channel = channel

    @mutator
    def summary(self, summary: str):
        self._summary = summary

    @mutator
    def attachment(self, attachments: Union[dict, list[dict]]):
        if not isinstance(attachments, list):
            attachments = [attachments]
        self._attachments.extend(attachments)

    @mutator
    def action(self, actions: Union[dict, list[dict]]):
        if not isinstance(actions, list):
            actions = [actions]
        self._actions.extend(actions)

    @mutator
    def stats(
        self,
        title: str,
        values: Mapping[str, Any],
        *,
        extra_props: Optional[dict] = None,
        ignore_undefined: bool = True,
    ):
        """Add an attachment listing *values* as fields."""
        block = build_stats(title, values, ignore_undefined=ignore_undefined)
        self.attachment(self._stats_attachment(block, extra_props or {}))

    @mutator
    def error(self, err: BaseException, *, label: str = "", title: str = ""):
        """Add an error with its traceback, plus a bug report link if possible."""
        self._errors.append(err)
        self._add_error(err, label=label, title=title)

    async def send(
        self,
        *,
        default_attachment: bool = True,
        extra_props: Optional[dict] = None,
    ) -> None:
        self._ensure_building()
        self._validate()
        self._sent = True
        merged = {**self._extra_props, **(extra_props or {})}
        await self._deliver(default_attachment=default_attachment, extra_props=merged)

    def _validate(self) -> None:
        """Raise before any I/O if the message cannot be sent."""

    @abstractmethod
    def color(self, color: str): ...

    @abstractmethod
    def title(self, title: str): ...

    @abstractmethod
    def icon(self, link_or_emoji: str): ...

    @abstractmethod
    def username(self, name: str): ...

    @abstractmethod
    def button(self, label: str, url: str, style: Optional[str] = None): ...

    @abstractmethod
    def _stats_attachment(self, block: StatsBlock, extra_props: dict) -> dict: ...

    @abstractmethod
    def _add_error(self, err: BaseException, *, label: str, title: str) -> None: ...

    @abstractmethod
    async def _deliver(self, *, default_attachment: bool, extra_props: dict) -> None: ...

"""Markup helpers for the chat providers' text dialects."""

from dataclasses import dataclass, fields
from typing import Mapping, Union


@dataclass(frozen=True)
class MarkupDialect:
    """Delimiter pairs and link template of a provider's markup."""
    name: str
    code: str
    bold: str
    italics: str
    strikethrough: str
    link: str  # str.format template with {url} and {text}


SLACK_MARKUP = MarkupDialect(
    name="slack",
    code="`",
    bold="*",
    italics="_",
    strikethrough="~",
    link="<{url}|{text}>",
)

TEAMS_MARKUP = MarkupDialect(
    name="teams",
    code="`",
    bold="**",
    italics="*",
    strikethrough="~~",
    link="[{text}]({url})",
)


@dataclass(frozen=True)
class FormatOptions:
    code: bool = False
    pre: bool = False  # alias of code
    bold: bool = False
    italics: bool = False
    strikethrough: bool = False


DEFAULT_OPTIONS = FormatOptions(bold=True)

OptionsLike = Union[FormatOptions, Mapping[str, bool], None]


def _coerce_options(options: OptionsLike) -> FormatOptions:
    if options is None:
        return DEFAULT_OPTIONS
    if isinstance(options, FormatOptions):
        return options
    known = {f.name for f in fields(FormatOptions)}
    unknown = set(options) - known
    if unknown:
        raise TypeError(f"Unknown format option(s): {', '.join(sorted(unknown))}")
    return FormatOptions(**{k: bool(v) for k, v in options.items()})


def _wrap(text: str, delimiter: str) -> str:
    return f"{delimiter}{text}{delimiter}"


def format_text(text: str, dialect: MarkupDialect, options: OptionsLike = None) -> str:
    """
    Wrap *text* in the dialect's markup.

    Without options the text is made bold. An explicit empty options
    mapping (or ``FormatOptions()``) returns the text unchanged.
    Wraps are applied code first, then bold, italics, strikethrough.
    """
    opts = _coerce_options(options)
    if opts.code or opts.pre:
        text = _wrap(text, dialect.code)
    if opts.bold:
        text = _wrap(text, dialect.bold)
    if opts.italics:
        text = _wrap(text, dialect.italics)
    if opts.strikethrough:
        text = _wrap(text, dialect.strikethrough)
    return text


def format_url(url: str, text: str, dialect: MarkupDialect) -> str:
    return dialect.link.format(url=url, text=text)


_SLACK_ESCAPES = {"&": "&amp;", "<": "&lt;", ">": "&gt;"}


def escape_slack_text(text: str) -> str:
    """Escape the three control characters of Slack's mrkdwn."""
    return "".join(_SLACK_ESCAPES.get(ch, ch) for ch in text)


def preserve_whitespace(text: str) -> str:
    """Keep line breaks and indentation visible in Teams markdown."""
    return text.replace("\n", "\n\n").replace(" ", "&nbsp;")

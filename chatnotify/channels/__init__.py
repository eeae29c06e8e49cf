"""Base types for chat provider adapters."""

import json
from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass
class ChannelPayload:
    """Represents the HTTP request for one notification."""
    method: str
    url: str
    headers: dict[str, str]
    body: str  # JSON string


def json_payload(
    url: str,
    body: Any,
    headers: Optional[dict[str, str]] = None,
) -> ChannelPayload:
    return ChannelPayload(
        method="POST",
        url=url,
        headers={"Content-Type": "application/json", **(headers or {})},
        body=json.dumps(body, default=str),
    )


@dataclass
class Field:
    """A rendered stats entry: human-readable title plus string value."""
    title: str
    value: str
    short: bool = False


@dataclass
class StatsBlock:
    title: str
    fields: list[Field] = field(default_factory=list)

"""
Rendering of stats values and keys.

Values become strings the way a reader expects to see them in chat:
booleans as ``true``/``false``, numbers as written, strings trimmed,
``None`` as ``null`` and anything else as compact JSON.
Keys are converted to start case: ``appPush`` -> ``App Push``,
``build_id`` -> ``Build Id``.
"""

import json
import re
import unicodedata
from typing import Any, Mapping

from chatnotify.channels import Field, StatsBlock

# Fields whose rendered value and key both fit get displayed side by side
SHORT_FIELD_LIMIT = 30

_RUN_RE = re.compile(r"\d+|[^\W\d_]+")


def _split_case(run: str) -> list[str]:
    # fooBar -> foo|Bar, HTTPServer -> HTTP|Server; caseless scripts stay whole
    words = []
    start = 0
    for i in range(1, len(run)):
        prev, cur = run[i - 1], run[i]
        nxt = run[i + 1] if i + 1 < len(run) else ""
        if cur.isupper() and (prev.islower() or (prev.isupper() and nxt.islower())):
            words.append(run[start:i])
            start = i
    words.append(run[start:])
    return words


def start_case(key: str) -> str:
    """Split camelCase / snake_case / kebab-case keys into capitalised words."""
    words = []
    for run in _RUN_RE.findall(unicodedata.normalize("NFC", key)):
        words.extend([run] if run.isdigit() else _split_case(run))
    return " ".join(w[0].upper() + w[1:] for w in words)


def format_value(val: Any) -> str:
    if isinstance(val, bool):
        return "true" if val else "false"
    if val is None:
        return "null"
    if isinstance(val, (int, float)):
        return str(val)
    if isinstance(val, str):
        return val.strip()
    try:
        return json.dumps(val, default=str, separators=(",", ":")).strip()
    except (TypeError, ValueError):
        return str(val).strip()


def build_stats(
    title: str,
    values: Mapping[str, Any],
    ignore_undefined: bool = True,
) -> StatsBlock:
    """Convert a mapping into ordered fields, skipping ``None`` if asked."""
    block = StatsBlock(title=title)
    for key, val in values.items():
        if ignore_undefined and val is None:
            continue
        rendered = format_value(val)
        key = key.strip()
        block.fields.append(
            Field(
                title=start_case(key),
                value=rendered,
                short=len(rendered) <= SHORT_FIELD_LIMIT and len(key) <= SHORT_FIELD_LIMIT,
            )
        )
    return block

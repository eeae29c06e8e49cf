"""Validation of webhook URLs set at runtime."""

import logging
from typing import Optional

import httpx

from chatnotify.channels.detect import detect_provider

logger = logging.getLogger(__name__)

VALID_PROVIDERS = {"slack", "teams"}

# Common typos -> correct provider
_PROVIDER_SUGGESTIONS: dict[str, str] = {
    "slak": "slack",
    "sclack": "slack",
    "team": "teams",
    "ms-teams": "teams",
    "msteams": "teams",
    "microsoft-teams": "teams",
}


def suggest_provider(name: str) -> Optional[str]:
    """Return a suggestion if the input looks like a typo of a valid provider."""
    if name in VALID_PROVIDERS:
        return None
    return _PROVIDER_SUGGESTIONS.get(name.lower())


def validate_webhook_url(provider: str, url: str) -> Optional[str]:
    """
    Validate a webhook URL for a provider.
    Returns None if valid, or an error message string if invalid.

    A URL that looks like another provider's webhook is only logged;
    proxies and self-hosted relays are legitimate destinations.
    """
    err = _url_problem(url)
    if err:
        return err
    detected = detect_provider(url)
    if detected and detected != provider:
        logger.warning("Webhook for %s looks like a %s webhook", provider, detected)
    return None


def _url_problem(url) -> Optional[str]:
    if not isinstance(url, str) or not url.strip():
        return "webhook URL is empty"
    try:
        parsed = httpx.URL(url)
    except httpx.InvalidURL as e:
        return f"webhook URL is malformed: {e}"
    if parsed.scheme not in ("http", "https"):
        return f"webhook URL scheme must be http or https, got {parsed.scheme or 'none'!r}"
    if not parsed.host:
        return "webhook URL has no host"
    return None

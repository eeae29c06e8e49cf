"""Auto-detection of chat provider from a webhook URL."""

from typing import Optional


def detect_provider(url: str) -> Optional[str]:
    """
    Detect the chat provider from a webhook URL.

    Returns:
        'slack', 'teams', or None if the URL matches neither
    """
    url_lower = url.lower()

    if "hooks.slack.com/" in url_lower or "slack.com/api/" in url_lower:
        return "slack"

    if (
        "webhook.office.com" in url_lower
        or "outlook.office.com/webhook" in url_lower
        or "logic.azure.com" in url_lower
    ):
        return "teams"

    return None

"""HTTP delivery of notification payloads."""

import json
import logging
from typing import Any, Optional

import httpx

from chatnotify.channels import ChannelPayload

logger = logging.getLogger(__name__)


class WebhookTransport:
    """
    POST payloads to webhook / API endpoints, best effort.

    Failures (network errors, non-200 responses, a truthy ``error``
    field in a JSON response) are logged with the payload and never raised.
    """

    def __init__(
        self,
        timeout: float = 10,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.timeout = timeout
        # Custom httpx transport, e.g. httpx.MockTransport in tests
        self._transport = transport

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.timeout,
            follow_redirects=True,
            transport=self._transport,
        )

    async def send(self, payload: ChannelPayload, message: Any = None) -> None:
        """
        Send a single payload.

        Args:
            payload: ChannelPayload instance
            message: Original message, included in failure logs
        """
        if message is None:
            message = payload.body
        try:
            async with self.client() as client:
                response = await client.request(
                    method=payload.method,
                    url=payload.url,
                    headers=payload.headers,
                    content=payload.body,
                )
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.error(
                "Failed to deliver notification to %s: %s | message=%s",
                _redact(payload.url), e, _dump(message),
            )
            return

        if response.status_code != 200:
            logger.error(
                "Notification endpoint returned status %s: %s | message=%s",
                response.status_code, response.text[:200], _dump(message),
            )
            return

        error = _api_error(response)
        if error:
            logger.error(
                "Notification endpoint reported error %r | message=%s",
                error, _dump(message),
            )
            return

        logger.debug("Delivered notification to %s", _redact(payload.url))


def _api_error(response: httpx.Response) -> Any:
    # Slack answers HTTP 200 with {"ok": false, "error": "..."} on API errors;
    # webhooks answer plain text ("ok", "1")
    try:
        body = response.json()
    except ValueError:
        return None
    if isinstance(body, dict):
        return body.get("error")
    return None


def _dump(message: Any) -> str:
    if isinstance(message, str):
        return message
    return json.dumps(message, default=str)


def _redact(url: str) -> str:
    # Webhook paths carry the secret
    try:
        parsed = httpx.URL(url)
    except httpx.InvalidURL:
        return "<invalid url>"
    return f"{parsed.scheme}://{parsed.host}"

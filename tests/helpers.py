import json

import httpx

BUGS_URL = "https://github.com/acme/deployer/issues"


class RecordingHandler:
    """httpx.MockTransport handler that records requests and replies with a canned response."""

    def __init__(self, status_code: int = 200, body=None, exc: Exception | None = None):
        self.status_code = status_code
        self.body = {"ok": True} if body is None else body
        self.exc = exc
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.exc is not None:
            raise self.exc
        if isinstance(self.body, (dict, list)):
            return httpx.Response(self.status_code, json=self.body)
        return httpx.Response(self.status_code, text=self.body)

    @property
    def payloads(self) -> list[dict]:
        return [json.loads(r.content) for r in self.requests]


def raised(exc: Exception) -> Exception:
    """Return *exc* with a traceback attached."""
    try:
        raise exc
    except Exception as e:
        return e

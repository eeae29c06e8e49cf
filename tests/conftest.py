import httpx
import pytest

from chatnotify import PackageInfo, Settings, WebhookTransport

from helpers import BUGS_URL, RecordingHandler


@pytest.fixture
def handler():
    return RecordingHandler()


@pytest.fixture
def transport(handler):
    return WebhookTransport(timeout=1, transport=httpx.MockTransport(handler))


@pytest.fixture
def settings():
    return Settings(_env_file=None, environment="production")


@pytest.fixture
def package_info():
    return PackageInfo(name="deployer", version="1.2.3", bugs_url=BUGS_URL)

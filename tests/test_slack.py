import asyncio
import logging
from urllib.parse import quote

import httpx
import pytest

from chatnotify import MessageAlreadySentError, PackageInfo, Settings, SlackNotifier, WebhookTransport
from chatnotify.channels.base import format_traceback
from chatnotify.channels.slack import SLACK_API_URL

from helpers import BUGS_URL, RecordingHandler, raised

WEBHOOK = "https://hooks.slack.com/services/T000/B000/XXXX"


def make_notifier(settings, transport, package_info, **kwargs) -> SlackNotifier:
    notifier = SlackNotifier(settings=settings, transport=transport, package_info=package_info, **kwargs)
    notifier.set_webhook(WEBHOOK)
    return notifier


def test_end_to_end_stats_message(settings, transport, handler, package_info):
    notifier = make_notifier(settings, transport, package_info)

    asyncio.run(
        notifier.message()
        .text("Deploy done")
        .stats("Info", {"duration": 12, "ok": True})
        .send(default_attachment=False)
    )

    assert len(handler.requests) == 1
    assert str(handler.requests[0].url) == WEBHOOK
    payload = handler.payloads[0]
    assert payload["text"] == "Deploy done"
    assert payload["channel"] == "#general"
    assert payload["username"] == "slackbot"
    [attachment] = payload["attachments"]
    assert attachment["title"] == "Info"
    assert attachment["fields"] == [
        {"title": "Duration", "value": "12", "short": True},
        {"title": "Ok", "value": "true", "short": True},
    ]


def test_default_attachment_is_appended_once(settings, transport, handler, package_info):
    notifier = make_notifier(settings, transport, package_info)

    asyncio.run(notifier.message("hello").send())

    [attachment] = handler.payloads[0]["attachments"]
    assert attachment["title"] == "App Info:"
    assert [f["title"] for f in attachment["fields"]] == ["Hostname", "Environment"]
    assert attachment["fields"][1]["value"] == "production"
    assert attachment["footer"].startswith("deployer v1.2.3")


def test_actions_become_a_trailing_attachment(settings, transport, handler, package_info):
    notifier = make_notifier(settings, transport, package_info)

    asyncio.run(
        notifier.message("build ready")
        .button("Open", "https://ci.example.com/1", style="primary")
        .action({"type": "button", "text": "Logs", "url": "https://ci.example.com/1/logs"})
        .send(default_attachment=False)
    )

    [attachment] = handler.payloads[0]["attachments"]
    assert attachment["title"] == ""
    assert attachment["actions"] == [
        {"type": "button", "text": "Open", "url": "https://ci.example.com/1", "style": "primary"},
        {"type": "button", "text": "Logs", "url": "https://ci.example.com/1/logs"},
    ]


def test_sent_payload_is_a_copy(settings, transport, handler, package_info):
    notifier = make_notifier(settings, transport, package_info)
    message = notifier.message("x").attachment({"text": "a"}).button("b", "https://b.io")

    asyncio.run(message.send())

    assert message._attachments == [{"text": "a"}]
    assert len(handler.payloads[0]["attachments"]) == 3


def test_summary_sets_fallback_of_first_attachment(settings, transport, handler, package_info):
    notifier = make_notifier(settings, transport, package_info)

    asyncio.run(
        notifier.message("x")
        .summary("short version")
        .attachment([{"text": "a"}, {"text": "b"}])
        .send(default_attachment=False)
    )

    attachments = handler.payloads[0]["attachments"]
    assert attachments[0]["fallback"] == "short version"
    assert "fallback" not in attachments[1]


def test_icon_username_and_extra_props(settings, transport, handler, package_info):
    notifier = make_notifier(settings, transport, package_info)

    asyncio.run(
        notifier.message("x")
        .icon(":rocket:")
        .username("deploy-bot")
        .send(default_attachment=False, extra_props={"username": "override", "link_names": True})
    )
    asyncio.run(notifier.message("y").icon("https://img.example.com/i.png").send())

    first, second = handler.payloads
    assert first["icon_emoji"] == ":rocket:"
    assert first["username"] == "override"
    assert first["link_names"] is True
    assert second["icon_url"] == "https://img.example.com/i.png"
    assert "icon_emoji" not in second


def test_color_and_title_are_accepted(settings, transport, handler, package_info):
    notifier = make_notifier(settings, transport, package_info)
    message = notifier.message("x")
    assert message.color("#F00").title("ignored") is message


def test_error_attachment_with_issue_link(settings, transport, handler, package_info):
    notifier = make_notifier(settings, transport, package_info)
    err = raised(ValueError("boom <3"))

    asyncio.run(notifier.message().error(err, label="Deploy").send(default_attachment=False))

    [attachment] = handler.payloads[0]["attachments"]
    assert attachment["pretext"] == "*Error*: boom &lt;3"
    assert attachment["fallback"] == attachment["pretext"]
    assert attachment["color"] == "danger"
    assert "ValueError: boom &lt;3" in attachment["text"]
    [action] = attachment["actions"]
    url = action["url"]
    assert url.startswith(f"{BUGS_URL}/new?title=")
    assert quote("[Deploy] boom <3", safe="!~*'()") in url
    assert quote(format_traceback(err), safe="!~*'()") in url
    assert quote("App version: v1.2.3", safe="!~*'()") in url
    assert url.endswith("&labels=bug")


def test_error_label_defaults_to_exception_class(settings, transport, handler, package_info):
    notifier = make_notifier(settings, transport, package_info)

    err = RuntimeError("boom")
    message = notifier.message().error(err, title="Nightly")
    assert message.errors == (err,)
    asyncio.run(message.send())

    url = handler.payloads[0]["attachments"][0]["actions"][0]["url"]
    assert quote("[RuntimeError] Nightly", safe="!~*'()") in url


def test_error_without_bug_tracker_has_no_action(settings, transport, handler):
    notifier = make_notifier(settings, transport, PackageInfo(name="x", version="0.1.0"))

    asyncio.run(notifier.message().error(ValueError("boom")).send(default_attachment=False))

    [attachment] = handler.payloads[0]["attachments"]
    assert "actions" not in attachment


def test_builder_rejects_reuse_after_send(settings, transport, handler, package_info):
    notifier = make_notifier(settings, transport, package_info)
    message = notifier.message("once")

    asyncio.run(message.send())

    assert message.sent
    with pytest.raises(MessageAlreadySentError):
        message.text("twice")
    with pytest.raises(MessageAlreadySentError):
        asyncio.run(message.send())
    assert len(handler.requests) == 1


def test_webhook_wins_over_token(settings, transport, handler, package_info):
    notifier = make_notifier(settings, transport, package_info)
    notifier.set_token("xoxb-secret")

    asyncio.run(notifier.post_message("hi"))

    [request] = handler.requests
    assert str(request.url) == WEBHOOK
    assert "token" not in handler.payloads[0]
    assert "authorization" not in request.headers


def test_per_channel_webhook(settings, transport, handler, package_info):
    notifier = make_notifier(settings, transport, package_info)
    channel_hook = "https://hooks.slack.com/services/T000/B111/YYYY"
    notifier.set_webhook(channel_hook, "#deploys")

    asyncio.run(notifier.post_message("hi", channel="#deploys"))
    asyncio.run(notifier.post_message("hi", channel="#random"))

    assert [str(r.url) for r in handler.requests] == [channel_hook, WEBHOOK]


def test_token_api_used_without_webhook(settings, transport, handler, package_info):
    settings.slack.channel = "#ops"
    notifier = SlackNotifier(settings=settings, transport=transport, package_info=package_info)
    notifier.set_token("xoxb-secret")
    notifier.username = "ops-bot"

    asyncio.run(notifier.post_message("hi", default_attachment=False))

    [request] = handler.requests
    assert str(request.url) == SLACK_API_URL
    assert request.headers["authorization"] == "Bearer xoxb-secret"
    payload = handler.payloads[0]
    assert payload["token"] == "xoxb-secret"
    assert payload["channel"] == "#ops"
    assert payload["username"] == "ops-bot"


def test_nothing_sent_without_destination(settings, transport, handler, package_info, caplog):
    notifier = SlackNotifier(settings=settings, transport=transport, package_info=package_info)

    with caplog.at_level(logging.ERROR):
        asyncio.run(notifier.post_message("hi"))

    assert handler.requests == []
    assert "No Slack webhook or token" in caplog.text


def test_api_error_field_is_logged_not_raised(settings, package_info, caplog):
    handler = RecordingHandler(body={"ok": False, "error": "invalid_channel"})
    transport = WebhookTransport(transport=httpx.MockTransport(handler))
    notifier = make_notifier(settings, transport, package_info)

    with caplog.at_level(logging.ERROR):
        asyncio.run(notifier.message("hi").send())

    assert len(handler.requests) == 1
    assert "invalid_channel" in caplog.text


def test_suppressed_in_test_environment(transport, handler, package_info, caplog):
    notifier = make_notifier(Settings(_env_file=None, environment="test"), transport, package_info)

    with caplog.at_level(logging.INFO):
        asyncio.run(notifier.message("quiet").send())

    assert handler.requests == []
    [record] = [r for r in caplog.records if r.name == "chatnotify.channels.base"]
    assert record.label == "Slack"
    assert record.payload["text"] == "quiet"


def test_custom_log_condition(settings, transport, handler, package_info):
    notifier = make_notifier(settings, transport, package_info, log_condition=lambda: True)

    asyncio.run(notifier.message("quiet").send())

    assert handler.requests == []


def test_notifier_format_helpers(settings):
    notifier = SlackNotifier(settings=settings)
    assert notifier.format("x") == "*x*"
    assert notifier.format("x", {"code": True}) == "`x`"
    assert notifier.format_url("https://x.io", "x") == "<https://x.io|x>"
    assert SlackNotifier.escape_text("<&>") == "&lt;&amp;&gt;"

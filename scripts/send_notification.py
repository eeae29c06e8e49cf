#!/usr/bin/env python3
"""
Post a notification to Slack or Microsoft Teams.

Configuration comes from NOTIFY_* environment variables or a .env file
(e.g. NOTIFY_SLACK__WEBHOOK, NOTIFY_TEAMS__WEBHOOKS='{"ops": {"default": "..."}}').

Usage:
    python scripts/send_notification.py "Deploy done" --stat duration=12 --stat ok=true
    python scripts/send_notification.py "Nightly failed" --provider teams --channel ops --summary Nightly
"""

import argparse
import asyncio
import json
import logging
import sys

from chatnotify import NotifyError, Settings, get_notifier


def setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def parse_stat(raw: str) -> tuple[str, object]:
    key, sep, value = raw.partition("=")
    if not sep:
        raise argparse.ArgumentTypeError(f"Expected key=value, got {raw!r}")
    try:
        return key, json.loads(value)
    except ValueError:
        return key, value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("text", help="Message text")
    parser.add_argument("--provider", choices=["slack", "teams"], help="Override NOTIFY_PROVIDER")
    parser.add_argument("--channel", help="Destination channel")
    parser.add_argument("--webhook", help="Webhook URL to use for this message")
    parser.add_argument("--summary", help="Message summary (Teams) / fallback (Slack)")
    parser.add_argument("--title", help="Message title (Teams)")
    parser.add_argument("--color", help="Theme color (Teams)")
    parser.add_argument("--stats-title", default="Stats", help="Title of the stats attachment")
    parser.add_argument("--stat", action="append", type=parse_stat, default=[], metavar="KEY=VALUE")
    parser.add_argument("--button", nargs=2, action="append", default=[], metavar=("LABEL", "URL"))
    parser.add_argument("--no-context", action="store_true", help="Skip the runtime info attachment")
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser


async def run(args: argparse.Namespace) -> None:
    settings = Settings()
    if args.provider:
        settings.provider = args.provider
    notifier = get_notifier(settings)
    if args.webhook:
        notifier.set_webhook(args.webhook, args.channel)

    message = notifier.message(args.text, channel=args.channel)
    if args.summary:
        message.summary(args.summary)
    if args.title:
        message.title(args.title)
    if args.color:
        message.color(args.color)
    if args.stat:
        message.stats(args.stats_title, dict(args.stat))
    for label, url in args.button:
        message.button(label, url)

    await message.send(default_attachment=not args.no_context)


def main():
    args = build_parser().parse_args()
    setup_logging(args.verbose)
    try:
        asyncio.run(run(args))
    except NotifyError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()

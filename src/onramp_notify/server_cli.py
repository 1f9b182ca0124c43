"""``onramp-notify-server``: run the webhook receiver under uvicorn."""

import argparse
import os

from onramp_notify.config import settings


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="onramp-notify-server",
        description="Receive onramp transaction webhooks and send push notifications",
    )
    parser.add_argument("--host", default=settings.host, help=f"Bind host (default: {settings.host})")
    parser.add_argument("--port", type=int, default=settings.port, help=f"Bind port (default: {settings.port})")
    parser.add_argument("--log-level", default=settings.log_level, choices=["debug", "info", "warning", "error"])
    parser.add_argument("--redis-url", help="Store push tokens and pending notifications in Redis")
    parser.add_argument("--local", action="store_true", help="Console logs instead of JSON")
    return parser


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)

    # The app module reads settings at import, so overrides go through the environment
    if args.local:
        os.environ["ONRAMP_LOCAL_MODE"] = "1"
    if args.redis_url:
        os.environ["ONRAMP_REDIS_URL"] = args.redis_url
    os.environ["ONRAMP_LOG_LEVEL"] = args.log_level

    import uvicorn

    uvicorn.run("onramp_notify.main:app", host=args.host, port=args.port, log_level=args.log_level)


if __name__ == "__main__":
    main()

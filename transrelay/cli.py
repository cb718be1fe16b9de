"""
Command line entry point.

  transrelay serve [--host 0.0.0.0] [--port 8080]
  transrelay listen SESSION_ID [--language fr]
  transrelay create-session [SESSION_ID]
"""
from __future__ import annotations

import argparse
import asyncio
import logging
import uuid
from typing import List, Optional

import httpx
import uvicorn

from transrelay.client.listener import Listener
from transrelay.client.speaker import Speaker
from transrelay.config import get_settings
from transrelay.logging_config import configure_logging

logger = logging.getLogger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="transrelay", description="Live transcript/translation session relay")
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="run the relay server")
    serve.add_argument("--host", default="0.0.0.0")
    serve.add_argument("--port", type=int, default=8080)

    listen = sub.add_parser("listen", help="follow a session and speak its translations")
    listen.add_argument("session_id")
    listen.add_argument("--language", default="en", help="target language code to play (e.g. fr)")

    create = sub.add_parser("create-session", help="create an empty session record")
    create.add_argument("session_id", nargs="?", default=None, help="defaults to a new uuid4")

    return parser.parse_args(argv)


async def _listen(session_id: str, language: str) -> None:
    listener = Listener(session_id, language=language)
    try:
        await listener.run()
    finally:
        await listener.stop()


async def _create_session(session_id: str) -> None:
    speaker = Speaker(session_id)
    try:
        await speaker.create_session()
    finally:
        await speaker.close()


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    settings = get_settings()
    configure_logging(settings)

    if args.command == "serve":
        uvicorn.run("transrelay.main:app", host=args.host, port=args.port, log_level=settings.LOG_LEVEL.lower())
        return 0

    if args.command == "listen":
        try:
            asyncio.run(_listen(args.session_id, args.language))
        except KeyboardInterrupt:
            logger.info("Listener stopped")
        return 0

    session_id = args.session_id or str(uuid.uuid4())
    try:
        asyncio.run(_create_session(session_id))
    except httpx.HTTPError as e:
        logger.error("Create session failed: %s", e)
        return 1
    print(session_id)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

"""Terminal client: each line read from stdin is sent to the relay for translation."""

import argparse
import asyncio
import logging
import sys
from typing import List, Optional, TextIO

from ..config import ClientSettings
from ..protocol import DEFAULT_TARGET_LANGUAGE
from .connection import ConnectionManager, ConnectivityError, TranslationErrorReceived, TranslationResultReceived
from .state import ClientStateStore
from .transcription import TranscriptionSession

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Send text lines to the translation relay")
    parser.add_argument("--url", default=None, help="relay base URL (default: SOCKET_URL)")
    parser.add_argument("--target-language", default=DEFAULT_TARGET_LANGUAGE, help="target language code")
    parser.add_argument(
        "--drain-seconds",
        type=float,
        default=3.0,
        help="how long to wait for outstanding translations after EOF",
    )
    return parser


async def run_client(
    connection: ConnectionManager,
    target_language: str,
    *,
    source: TextIO = sys.stdin,
    out: TextIO = sys.stdout,
    drain_seconds: float = 3.0,
) -> int:
    store = ClientStateStore(connection)
    connection.on(
        TranslationResultReceived,
        lambda e: print(f"[{e.result.target_language}] {e.result.original} -> {e.result.translated}", file=out),
    )
    connection.on(TranslationErrorReceived, lambda e: print(f"error: {e.error}", file=out))

    try:
        await connection.connect()
    except ConnectivityError as e:
        logger.debug(f"Initial connect failed: {e}")
        print(store.last_error, file=out)
        return 1

    transcription = TranscriptionSession()
    transcription.start()
    loop = asyncio.get_running_loop()
    try:
        while True:
            line = await loop.run_in_executor(None, source.readline)
            if not line:
                break
            text = line.strip()
            if not text:
                continue
            transcription.feed(text)
            if not await store.send_translation(text, target_language):
                print(f"error: {store.last_error}", file=out)

        transcription.finish()
        if drain_seconds > 0:
            await asyncio.sleep(drain_seconds)
    finally:
        transcription.stop()
        await connection.disconnect()

    logger.info(f"Received {len(store.results)} translation(s)")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    settings = ClientSettings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    connection = ConnectionManager(args.url, settings=settings)
    try:
        return asyncio.run(run_client(connection, args.target_language, drain_seconds=args.drain_seconds))
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    raise SystemExit(main())

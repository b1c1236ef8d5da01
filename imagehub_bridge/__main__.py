from __future__ import annotations

import argparse
from typing import Optional, Sequence

from aiohttp import web

from .app import create_app
from .logging_config import setup_logging


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="imagehub-bridge",
        description="Serve the GitHub-backed image store over HTTP.",
    )
    parser.add_argument("--host", default="127.0.0.1", help="Interface to bind (default: 127.0.0.1)")
    parser.add_argument("--port", type=int, default=8188, help="Port to listen on (default: 8188)")
    parser.add_argument("--log-level", default=None, help="Logging level (default: $IMAGEHUB_LOG_LEVEL or INFO)")
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> None:
    args = parse_args(argv)
    logger = setup_logging(args.log_level)
    logger.info("Starting imagehub-bridge on %s:%d", args.host, args.port)
    web.run_app(create_app(), host=args.host, port=args.port)


if __name__ == "__main__":
    main()

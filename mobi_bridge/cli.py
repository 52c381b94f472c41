"""Command-line entry point: start the download server and the Slack bot.

WHY: The bridge is one process with two faces. The HTTP server must be
up before the first link is posted, and both must share the same slug
registry, so a single entry point wires them together.

HOW: Uses argparse for the listen port, upload directory, and log level.
Loads the required tokens and public host from the environment (fails
fast if any is missing), creates the upload directory, builds one
SlugRegistry, starts uvicorn on a daemon thread, and blocks on the
Socket Mode handler.

RULES:
- Missing configuration or an uncreatable upload directory stops startup
- --port overrides HTTP_PORT (default 11477)
- The HTTP thread is a daemon; the process lives as long as the bot
"""

from __future__ import annotations

import argparse
import logging
import threading
from pathlib import Path
from typing import List, Optional

from mobi_bridge.config import (
    HTTP_PORT,
    UPLOAD_DIR,
    ensure_upload_dir,
    load_app_token,
    load_bot_token,
    load_server_host,
)
from mobi_bridge.core.pipeline import ChatGateway, ConversionPipeline
from mobi_bridge.core.registry import SlugRegistry
from mobi_bridge.server.app import create_app as create_http_app
from mobi_bridge.server.app import run_server
from mobi_bridge.slack.bot import create_app as create_slack_app
from mobi_bridge.slack.bot import start_socket_mode

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the bridge.

    RULES:
    - Optional: --port, --upload-dir, --log-level
    """
    parser = argparse.ArgumentParser(
        prog="mobi_bridge",
        description="Slack bot that converts FB2/TXT books to MOBI and serves "
                    "them over HTTP by short link.",
    )

    parser.add_argument(
        "--port",
        type=int,
        default=HTTP_PORT,
        help="HTTP server port (default: %(default)s).",
    )

    parser.add_argument(
        "--upload-dir",
        type=Path,
        default=UPLOAD_DIR,
        help="Directory for downloaded and converted files (default: %(default)s).",
    )

    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: %(default)s).",
    )

    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """Entry point for ``python -m mobi_bridge`` and the mobi-bridge script.

    RULES:
    - argv=None means use sys.argv (normal CLI invocation)
    - Blocks until the Socket Mode handler stops
    """
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )

    bot_token = load_bot_token()
    app_token = load_app_token()
    public_host = load_server_host()
    upload_dir = ensure_upload_dir(args.upload_dir)

    registry = SlugRegistry()

    def build_pipeline(gateway: ChatGateway) -> ConversionPipeline:
        return ConversionPipeline(
            registry=registry,
            gateway=gateway,
            upload_dir=upload_dir,
            public_host=public_host,
        )

    slack_app = create_slack_app(build_pipeline, bot_token=bot_token)
    http_app = create_http_app(registry)

    http_thread = threading.Thread(
        target=run_server,
        args=(http_app, args.port),
        name="http-server",
        daemon=True,
    )
    http_thread.start()

    logger.info("Download links: http://%s/<slug>", public_host)
    logger.info("Storing files in %s", upload_dir.resolve())
    start_socket_mode(slack_app, app_token)


if __name__ == "__main__":
    main()

"""Configuration constants, tool options, and .env loading.

WHY: Centralizes all configurable values so they are easy to find,
update, and override. Accepted extensions, converter options, and
server defaults are plain data structures, not buried in logic.

HOW: python-dotenv loads the .env file on import. Constants are defined
as module-level sets, tuples, and strings. The load_*() functions give a
clear error when a required value is missing.

RULES:
- Tokens are loaded from .env via python-dotenv, never hardcoded
- ACCEPTED_EXTENSIONS are lowercase, with dot
- All defaults can be overridden via environment variables
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Load .env from the project root (where the process is started)
load_dotenv()

# ---------------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------------

ACCEPTED_EXTENSIONS: set[str] = {".fb2", ".txt"}
"""E-book extensions the bridge converts (lowercase, with dot)."""

OUTPUT_SUFFIX = ".mobi"
MOBI_MEDIA_TYPE = "application/x-mobipocket-ebook"

# ---------------------------------------------------------------------------
# External tools
# ---------------------------------------------------------------------------

DOWNLOAD_COMMAND = os.getenv("DOWNLOAD_COMMAND", "wget")
CONVERT_COMMAND = os.getenv("CONVERT_COMMAND", "ebook-convert")

CONVERT_OPTIONS: tuple[str, ...] = (
    "--output-profile", "kindle",
    "--mobi-file-type", "both",
)
"""Fixed profile/format options passed to ebook-convert."""

# ---------------------------------------------------------------------------
# Server and storage defaults
# ---------------------------------------------------------------------------

DEFAULT_PORT = 11477
HTTP_PORT = int(os.getenv("HTTP_PORT", str(DEFAULT_PORT)))
UPLOAD_DIR = Path(os.getenv("UPLOAD_DIR", "./uploads"))
SLACK_CHANNEL_ID = os.getenv("SLACK_CHANNEL_ID", "")


def _require(name: str, hint: str) -> str:
    value = os.getenv(name, "").strip()
    if not value:
        raise ValueError(
            "{} not configured. {}".format(name, hint)
        )
    return value


def load_bot_token() -> str:
    """Load the Slack bot token (xoxb-...) from the environment.

    RULES:
    - Raises ValueError if the token is missing or empty
    """
    return _require("SLACK_BOT_TOKEN", "Add the bot token to the .env file.")


def load_app_token() -> str:
    """Load the Slack app-level token (xapp-...) used by Socket Mode."""
    return _require("SLACK_APP_TOKEN", "Add the app-level token to the .env file.")


def load_server_host() -> str:
    """Load the public host:port used to build retrieval URLs.

    WHY: Users download the converted book from a link in the chat, so
    the bridge must know how it is reached from the outside. Without it
    every link would be broken, so startup fails instead.
    """
    return _require(
        "SERVER_HOST",
        "Set it to the public host:port of the download server.",
    )


def ensure_upload_dir(path: Optional[Path] = None) -> Path:
    """Create the upload directory if needed and return it.

    RULES:
    - Failure to create the directory propagates (fatal at startup)
    """
    upload_dir = Path(path) if path is not None else UPLOAD_DIR
    upload_dir.mkdir(parents=True, exist_ok=True)
    return upload_dir

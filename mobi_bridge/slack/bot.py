"""Slack bot: Socket Mode event handlers and the outbound chat gateway.

WHY: Users share FB2/TXT books in Slack and expect a MOBI back in the
same channel. This module is the glue between Slack events and the
conversion pipeline: it turns file_shared events into DocumentEvents
and implements the pipeline's ChatGateway on top of the Slack WebClient.

HOW: Uses slack-bolt with Socket Mode (no public URL needed for the bot
itself). create_app() builds the Bolt App, wraps its WebClient in a
SlackGateway, asks the caller for a pipeline bound to that gateway, and
registers the handlers. handle_file_shared() fetches file metadata and
submits the document; the pipeline runs it on its own thread.

RULES:
- All slash commands must be ack()'d within 3 seconds
- Heavy work never runs on the Bolt listener thread (pipeline.submit)
- Files shared by the bot itself are ignored (its own MOBI uploads)
- Bot only watches SLACK_CHANNEL_ID (if configured)
- Uses files_upload_v2 (v1 is deprecated)
- Downloads of url_private need the bot token as a Bearer header
"""

from __future__ import annotations

import logging
import os
from typing import Any, Callable, Dict, Optional

from slack_bolt import App
from slack_bolt.adapter.socket_mode import SocketModeHandler
from slack_sdk.errors import SlackClientError

from mobi_bridge.config import SLACK_CHANNEL_ID
from mobi_bridge.core.errors import BridgeError, NotificationError
from mobi_bridge.core.jobs import DocumentEvent, RemoteFile
from mobi_bridge.core.pipeline import ChatGateway, ConversionPipeline
from mobi_bridge.messages import GREETING_TEXT

logger = logging.getLogger(__name__)

START_COMMAND = "/start"


# ---------------------------------------------------------------------------
# Outbound gateway
# ---------------------------------------------------------------------------


class SlackGateway(ChatGateway):
    """ChatGateway backed by a Slack WebClient.

    RULES:
    - chat_id is a Slack channel ID
    - Slack client errors are re-raised as NotificationError
    """

    def __init__(self, client: Any) -> None:
        self._client = client

    def send_text(self, chat_id: str, text: str) -> None:
        try:
            self._client.chat_postMessage(channel=chat_id, text=text)
        except SlackClientError as exc:
            raise NotificationError("chat_postMessage to {} failed: {}".format(chat_id, exc)) from exc

    def send_document(
        self,
        chat_id: str,
        filename: str,
        content: bytes,
        caption: Optional[str] = None,
    ) -> None:
        try:
            self._client.files_upload_v2(
                channel=chat_id,
                content=content,
                filename=filename,
                title=filename,
                initial_comment=caption,
            )
        except SlackClientError as exc:
            raise NotificationError("files_upload_v2 of {} failed: {}".format(filename, exc)) from exc

    def resolve_download(self, event: DocumentEvent) -> RemoteFile:
        """Return the file's url_private with the bot token as Bearer auth.

        RULES:
        - Uses event.url when the handler already fetched it
        - Otherwise asks files_info; a missing URL is a BridgeError
        """
        url = event.url
        if not url:
            file_data = self._client.files_info(file=event.file_id).get("file", {})
            url = file_data.get("url_private", "")
        if not url:
            raise BridgeError("No download URL for file {}".format(event.file_id))
        return RemoteFile(
            url=url,
            headers={"Authorization": "Bearer {}".format(self._client.token)},
        )


# ---------------------------------------------------------------------------
# App setup
# ---------------------------------------------------------------------------


def create_app(
    pipeline_factory: Callable[[ChatGateway], ConversionPipeline],
    bot_token: Optional[str] = None,
    token_verification_enabled: bool = True,
) -> App:
    """Create and configure the Slack Bolt app with all handlers.

    WHY: The pipeline needs the app's WebClient to reply, and the
    handlers need the pipeline, so both are wired here in one place.

    HOW: Creates the App, wraps app.client in a SlackGateway, calls
    pipeline_factory(gateway), and registers the handlers.

    RULES:
    - If bot_token is None, reads from SLACK_BOT_TOKEN env var
    - token_verification_enabled=False skips auth.test (tests, offline)
    """
    token = bot_token or os.environ.get("SLACK_BOT_TOKEN", "")

    app = App(token=token, token_verification_enabled=token_verification_enabled)
    pipeline = pipeline_factory(SlackGateway(app.client))

    def on_file_shared(event: Dict[str, Any], client: Any, context: Any, logger: Any) -> None:
        handle_file_shared(event, client, logger, pipeline, context.get("bot_user_id"))

    app.event("file_shared")(on_file_shared)
    app.command(START_COMMAND)(handle_start_command)

    return app


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------


def handle_start_command(ack: Any, command: Dict[str, Any], client: Any, logger: Any) -> None:
    """Acknowledge /start and post the greeting in the channel."""
    ack()
    try:
        client.chat_postMessage(channel=command.get("channel_id", ""), text=GREETING_TEXT)
    except Exception:
        logger.exception("Failed to post greeting")


def handle_file_shared(
    event: Dict[str, Any],
    client: Any,
    logger: Any,
    pipeline: ConversionPipeline,
    bot_user_id: Optional[str] = None,
) -> None:
    """Handle file_shared events: look up the file and submit it.

    WHY: Every shared file is a conversion request. Whether it is an
    acceptable book is the pipeline's decision, so unsupported files
    still reach it and the user gets the rejection message.

    RULES:
    - If SLACK_CHANNEL_ID is set, only watch that channel
    - Ignore files the bot shared itself
    - files_info failure → logged, event dropped
    """
    file_id = event.get("file_id", "")
    channel_id = event.get("channel_id", "")

    if SLACK_CHANNEL_ID and channel_id != SLACK_CHANNEL_ID:
        return

    if bot_user_id and event.get("user_id") == bot_user_id:
        return

    try:
        file_info_resp = client.files_info(file=file_id)
    except Exception:
        logger.exception("Failed to fetch file info for %s", file_id)
        return

    file_data = file_info_resp.get("file", {})
    document = DocumentEvent(
        chat_id=channel_id,
        filename=file_data.get("name", ""),
        file_id=file_id,
        url=file_data.get("url_private") or None,
    )
    pipeline.submit(document)


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def start_socket_mode(app: App, app_token: str) -> None:
    """Connect *app* to Slack over Socket Mode and block.

    RULES:
    - Requires the app-level token (xapp-...)
    """
    logger.info("Starting Slack bot in Socket Mode...")
    if SLACK_CHANNEL_ID:
        logger.info("Watching channel: %s", SLACK_CHANNEL_ID)
    else:
        logger.info("Watching all channels the bot is in")

    handler = SocketModeHandler(app, app_token)
    handler.start()

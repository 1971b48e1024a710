"""Bolt application wiring."""

from __future__ import annotations

import logging

from slack_bolt import App
from slack_bolt.adapter.socket_mode import SocketModeHandler

from prbridge_core.config import build_credential_resolver
from prbridge_core.gh.pull_request import ReviewPlatform
from prbridge_slack.bridge import ReviewBridge

logger = logging.getLogger(__name__)


def build_bridge(config: dict, platform: ReviewPlatform | None = None) -> ReviewBridge:
    return ReviewBridge(
        platform=platform if platform is not None else ReviewPlatform(config["github_token"]),
        resolve_credential=build_credential_resolver(config),
        require_write_access=bool(config.get("require_write_access", False)),
        bot_credential=config.get("github_token"),
    )


def create_app(config: dict, bridge: ReviewBridge | None = None) -> App:
    """Build a bolt App with every prbridge listener registered."""
    app = App(
        token=config["slack_bot_token"],
        signing_secret=config.get("slack_signing_secret"),
        logger=logging.getLogger("slack_bolt"),
    )
    (bridge if bridge is not None else build_bridge(config)).register(app)
    return app


def start_socket_mode(app: App, app_token: str) -> None:
    """Block serving events over Socket Mode."""
    logger.info("Starting Slack Socket Mode connection")
    SocketModeHandler(app, app_token).start()

"""Bot GitHub token for prbridge.

The bot token fetches pull requests for cards and, unless
fallback_to_bot_token is off, submits reviews for Slack users with no token
of their own. load_config() already reads GITHUB_TOKEN (after .env is
loaded); when that is empty the token of a local `gh` login is used, which
is handy when running `prbridge preview` from a developer machine.
"""

from __future__ import annotations

import logging
import subprocess

logger = logging.getLogger(__name__)

GH_TIMEOUT_SECONDS = 5


def _gh_cli_token() -> str | None:
    try:
        result = subprocess.run(
            ["gh", "auth", "token"],
            capture_output=True,
            text=True,
            timeout=GH_TIMEOUT_SECONDS,
        )
    except FileNotFoundError:
        logger.debug("gh CLI not installed; no fallback GitHub token.")
        return None
    except subprocess.TimeoutExpired:
        logger.warning("`gh auth token` did not answer within %ss.", GH_TIMEOUT_SECONDS)
        return None
    if result.returncode != 0:
        logger.debug("gh CLI has no active login.")
        return None
    return result.stdout.strip() or None


def resolve_github_token(config: dict) -> str | None:
    """Return the configured bot token, or the gh CLI session token if none is set.

    Never raises; commands that need a token emit a UsageError on None.
    """
    token = config.get("github_token")
    if token:
        return token
    token = _gh_cli_token()
    if token:
        logger.info("Using the GitHub token of the local gh CLI session.")
    return token

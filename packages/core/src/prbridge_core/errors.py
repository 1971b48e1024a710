"""Exception hierarchy shared by every prbridge layer.

The core raises the card-level errors; the GitHub client translates
PyGithub exceptions into the PlatformError family so the Slack layer only
ever has to catch PRBridgeError.
"""

from __future__ import annotations


class PRBridgeError(Exception):
    """Base class for every error prbridge raises on purpose."""

    #: Short text shown to the Slack user who triggered the failing action.
    user_message = "Something went wrong."

    def describe(self) -> str:
        detail = str(self)
        return f"{self.user_message} {detail}".strip() if detail else self.user_message


class MalformedPayload(PRBridgeError, ValueError):
    """A GitHub or Slack payload is missing a required field."""

    user_message = "Received an unexpected payload."


class EmptyCard(PRBridgeError):
    """A card has no terminal block to insert a status note before."""

    user_message = "The card to update is empty."


class AlreadyDecided(PRBridgeError):
    """The card already records a review decision."""

    user_message = "This pull request has already been reviewed from Slack."


class PlatformError(PRBridgeError):
    """GitHub rejected or failed a request."""

    user_message = "GitHub request failed."

    def __init__(self, message: str = "", status: int | None = None):
        super().__init__(message)
        self.status = status


class NotFound(PlatformError):
    user_message = "Pull request not found."


class AuthError(PlatformError):
    user_message = "GitHub refused the credentials."


class RateLimited(PlatformError):
    user_message = "GitHub rate limit exceeded. Try again later."


class Conflict(PlatformError):
    user_message = "GitHub could not apply the review."

"""Modal views opened by the bridge."""

from __future__ import annotations

from prbridge_core.models import RoutingPayload
from prbridge_slack.events import COMMENT_ACTION_ID, COMMENT_BLOCK_ID, CardLocation, encode_modal_metadata

REQUEST_CHANGES_CALLBACK_ID = "request_changes_modal"


def build_request_changes_modal(routing: RoutingPayload, location: CardLocation) -> dict:
    """Modal asking the reviewer what needs to change.

    The card's location travels in private_metadata so the submission can
    update the card without any server-side state.
    """
    return {
        "type": "modal",
        "callback_id": REQUEST_CHANGES_CALLBACK_ID,
        "title": {"type": "plain_text", "text": "Request Changes"},
        "submit": {"type": "plain_text", "text": "Submit"},
        "close": {"type": "plain_text", "text": "Cancel"},
        "private_metadata": encode_modal_metadata(routing, location),
        "blocks": [
            {
                "type": "section",
                "text": {
                    "type": "mrkdwn",
                    "text": f"*Requesting changes for:*\n{routing.owner}/{routing.repo} #{routing.pull_number}",
                },
            },
            {
                "type": "input",
                "block_id": COMMENT_BLOCK_ID,
                "element": {
                    "type": "plain_text_input",
                    "action_id": COMMENT_ACTION_ID,
                    "multiline": True,
                    "placeholder": {"type": "plain_text", "text": "Please describe what changes are needed..."},
                },
                "label": {"type": "plain_text", "text": "Comment"},
            },
        ],
    }

"""Pull request cards as Slack Block Kit blocks.

A card is an ordered list of blocks:

    summary, [description], stats, [action row], [status note], divider

render_card() builds it from a ReviewRequest; apply_outcome() turns an
undecided card into a decided one by swapping the action row for a status
note. Both are pure: they never touch the network and never mutate their
input.

Every block carries a ``block_id`` naming its kind. Slack keeps block ids
through chat.update and conversations.history, which is how a card fetched
back from Slack is recognized again.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import replace

from prbridge_core.errors import AlreadyDecided, EmptyCard
from prbridge_core.models import Approved, ChangesRequested, OutcomeEvent, ReviewRequest, RoutingPayload
from prbridge_core.utils.text import (
    APPROVED_GLYPH,
    CHANGES_REQUESTED_GLYPH,
    escape_mrkdwn,
    mergeable_glyph,
    mergeable_label,
    quote,
    status_glyph,
    truncate,
)

SUMMARY = "summary"
DESCRIPTION = "description"
STATS = "stats"
ACTION_ROW = "action-row"
STATUS_NOTE = "status-note"
DIVIDER = "divider"

BLOCK_IDS = {
    SUMMARY: "pr_summary",
    DESCRIPTION: "pr_description",
    STATS: "pr_stats",
    ACTION_ROW: "pr_actions",
    STATUS_NOTE: "pr_status",
    DIVIDER: "pr_divider",
}
_KIND_BY_BLOCK_ID = {block_id: kind for kind, block_id in BLOCK_IDS.items()}
# Cards posted before block ids were assigned only identify by Slack type.
_KIND_BY_TYPE = {"actions": ACTION_ROW, "divider": DIVIDER}

APPROVE_ACTION_ID = "approve_pr"
REQUEST_CHANGES_ACTION_ID = "request_changes"
VIEW_ACTION_ID = "view_github"


def _mrkdwn(text: str) -> dict:
    return {"type": "mrkdwn", "text": text}


def _plain(text: str) -> dict:
    return {"type": "plain_text", "text": text}


def block_kind(block: dict) -> str | None:
    """Return the card kind of a block, or None for blocks the card does not own."""
    kind = _KIND_BY_BLOCK_ID.get(block.get("block_id", ""))
    if kind is not None:
        return kind
    return _KIND_BY_TYPE.get(block.get("type", ""))


def find_block(card: Sequence[dict], kind: str) -> int | None:
    """Index of the first block of ``kind`` in ``card``, or None."""
    for index, block in enumerate(card):
        if block_kind(block) == kind:
            return index
    return None


def is_decided(card: Sequence[dict]) -> bool:
    return find_block(card, STATUS_NOTE) is not None


# --------------------------------------------------------------------------- #
# Rendering                                                                    #
# --------------------------------------------------------------------------- #


def _summary_block(request: ReviewRequest, owner: str, repo: str, number: int) -> dict:
    glyph = status_glyph(request.state, request.draft)
    block = {
        "type": "section",
        "block_id": BLOCK_IDS[SUMMARY],
        "text": _mrkdwn(
            f"*{glyph} <{request.html_url}|{escape_mrkdwn(request.title)}>*\n{owner}/{repo} #{number}"
        ),
    }
    if request.author_avatar_url:
        block["accessory"] = {
            "type": "image",
            "image_url": request.author_avatar_url,
            "alt_text": request.author_login,
        }
    return block


def _description_block(body: str) -> dict:
    return {
        "type": "section",
        "block_id": BLOCK_IDS[DESCRIPTION],
        "text": _mrkdwn(f"*Description:*\n{truncate(body)}"),
    }


def _stats_block(request: ReviewRequest) -> dict:
    return {
        "type": "section",
        "block_id": BLOCK_IDS[STATS],
        "fields": [
            _mrkdwn(f"*Author:*\n{request.author_login}"),
            _mrkdwn(f"*Branch:*\n{request.source_branch} → {request.target_branch}"),
            _mrkdwn(f"*Changes:*\n+{request.additions} -{request.deletions} ({request.changed_files} files)"),
            _mrkdwn(
                f"*Status:*\n{mergeable_glyph(request.mergeable_state)} {mergeable_label(request.mergeable_state)}"
            ),
        ],
    }


def _action_row(request: ReviewRequest, routing: RoutingPayload) -> dict:
    value = routing.to_json()
    return {
        "type": "actions",
        "block_id": BLOCK_IDS[ACTION_ROW],
        "elements": [
            {
                "type": "button",
                "text": _plain(f"{APPROVED_GLYPH} Approve"),
                "style": "primary",
                "action_id": APPROVE_ACTION_ID,
                "value": value,
            },
            {
                "type": "button",
                "text": _plain(f"{CHANGES_REQUESTED_GLYPH} Request Changes"),
                "style": "danger",
                "action_id": REQUEST_CHANGES_ACTION_ID,
                "value": value,
            },
            {
                "type": "button",
                "text": _plain("🔗 View on GitHub"),
                "url": request.html_url,
                "action_id": VIEW_ACTION_ID,
            },
        ],
    }


def render_card(request: ReviewRequest, owner: str, repo: str, number: int) -> list[dict]:
    """Render a pull request as a card.

    The description block is present only when the body has non-whitespace
    content; the action row only when the pull request is open and not a
    draft. The divider is always last.
    """
    blocks = [_summary_block(request, owner, repo, number)]

    if request.body and request.body.strip():
        blocks.append(_description_block(request.body))

    blocks.append(_stats_block(request))

    if request.is_actionable:
        blocks.append(_action_row(request, RoutingPayload(owner=owner, repo=repo, pull_number=int(number))))

    blocks.append({"type": "divider", "block_id": BLOCK_IDS[DIVIDER]})
    return blocks


# --------------------------------------------------------------------------- #
# Transitions                                                                  #
# --------------------------------------------------------------------------- #


def status_note_text(outcome: OutcomeEvent) -> str:
    """Plain headline of a decision, followed by the quoted comment if any."""
    if isinstance(outcome, Approved):
        return f"Approved by {outcome.actor_name}"
    if isinstance(outcome, ChangesRequested):
        headline = f"Changes requested by {outcome.actor_name}"
        if outcome.comment and outcome.comment.strip():
            return f"{headline}\n{quote(outcome.comment)}"
        return headline
    raise TypeError(f"unsupported outcome: {outcome!r}")


def _escaped(outcome: OutcomeEvent) -> OutcomeEvent:
    if isinstance(outcome, ChangesRequested) and outcome.comment:
        outcome = replace(outcome, comment=escape_mrkdwn(outcome.comment))
    return replace(outcome, actor_name=escape_mrkdwn(outcome.actor_name))


def _status_note_block(outcome: OutcomeEvent) -> dict:
    glyph = APPROVED_GLYPH if isinstance(outcome, Approved) else CHANGES_REQUESTED_GLYPH
    headline, _, comment_line = status_note_text(_escaped(outcome)).partition("\n")
    text = f"{glyph} *{headline}*"
    if comment_line:
        text += f"\n{comment_line}"
    return {"type": "section", "block_id": BLOCK_IDS[STATUS_NOTE], "text": _mrkdwn(text)}


def apply_outcome(card: Sequence[dict], outcome: OutcomeEvent) -> list[dict]:
    """Record a review decision on a card and return the new card.

    Removes the action row (if any) and inserts a status note right before
    the terminal block. Summary, description and stats are kept unchanged
    and in order. The input sequence is not modified.

    Raises EmptyCard when there is no terminal block, and AlreadyDecided
    when the card already carries a status note.
    """
    if not card:
        raise EmptyCard("card has no blocks")
    if is_decided(card):
        raise AlreadyDecided()

    blocks = list(card)
    actions_index = find_block(blocks, ACTION_ROW)
    if actions_index is not None:
        del blocks[actions_index]
    if not blocks:
        raise EmptyCard("card has no terminal block")

    blocks.insert(len(blocks) - 1, _status_note_block(outcome))
    return blocks


def card_fallback_text(request: ReviewRequest) -> str:
    """Notification text Slack shows where blocks cannot be rendered."""
    return f"GitHub PR: {request.title}"


def outcome_fallback_text(outcome: OutcomeEvent) -> str:
    if isinstance(outcome, Approved):
        return f"GitHub PR approved by {outcome.actor_name}"
    return f"Changes requested on PR by {outcome.actor_name}"

"""Typed records for the Slack payloads the bridge reacts to.

Bolt hands handlers loosely-typed dicts; they are parsed here, once, and
nothing past this module looks at raw Slack bodies.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass

from prbridge_core.errors import MalformedPayload
from prbridge_core.models import RoutingPayload

PR_URL_PATTERN = re.compile(r"https://github\.com/([^/\s|>]+)/([^/\s|>]+)/pull/(\d+)")

COMMENT_BLOCK_ID = "comment_block"
COMMENT_ACTION_ID = "comment_input"


@dataclass(frozen=True)
class CardLocation:
    """Where a card lives in Slack: the identity chat.update is keyed by."""

    channel_id: str
    message_ts: str
    thread_ts: str | None = None

    @property
    def key(self) -> tuple[str, str]:
        return (self.channel_id, self.message_ts)


@dataclass(frozen=True)
class LinkMention:
    routing: RoutingPayload
    channel_id: str
    reply_ts: str  # thread the card is posted into
    user_id: str | None = None


@dataclass(frozen=True)
class ActionInvoked:
    action_id: str
    routing: RoutingPayload
    location: CardLocation
    user_id: str
    trigger_id: str | None = None


@dataclass(frozen=True)
class ModalSubmitted:
    routing: RoutingPayload
    location: CardLocation
    user_id: str
    comment: str | None = None


def _require(data: dict, *path: str):
    value = data
    for key in path:
        value = value.get(key) if isinstance(value, dict) else None
        if value is None:
            raise MalformedPayload(f"Slack payload missing {'.'.join(path)}")
    return value


def parse_link_mentions(message: dict) -> list[LinkMention]:
    """Every distinct pull request link in a message, in order of appearance."""
    text = message.get("text") or ""
    channel_id = _require(message, "channel")
    reply_ts = message.get("thread_ts") or _require(message, "ts")

    mentions: list[LinkMention] = []
    seen: set[tuple[str, str, int]] = set()
    for owner, repo, number in PR_URL_PATTERN.findall(text):
        key = (owner, repo, int(number))
        if key in seen:
            continue
        seen.add(key)
        mentions.append(
            LinkMention(
                routing=RoutingPayload(owner=owner, repo=repo, pull_number=int(number)),
                channel_id=channel_id,
                reply_ts=reply_ts,
                user_id=message.get("user"),
            )
        )
    return mentions


def parse_action(body: dict) -> ActionInvoked:
    actions = body.get("actions") or []
    if not actions:
        raise MalformedPayload("block action carries no actions")
    action = actions[0]
    container = body.get("container") or {}
    message = body.get("message") or {}

    return ActionInvoked(
        action_id=_require(action, "action_id"),
        routing=RoutingPayload.from_json(action.get("value")),
        location=CardLocation(
            channel_id=container.get("channel_id") or _require(body, "channel", "id"),
            message_ts=container.get("message_ts") or _require(message, "ts"),
            thread_ts=container.get("thread_ts") or message.get("thread_ts"),
        ),
        user_id=_require(body, "user", "id"),
        trigger_id=body.get("trigger_id"),
    )


def encode_modal_metadata(routing: RoutingPayload, location: CardLocation) -> str:
    return json.dumps(
        {
            "owner": routing.owner,
            "repo": routing.repo,
            "pull_number": routing.pull_number,
            "channel_id": location.channel_id,
            "message_ts": location.message_ts,
            "thread_ts": location.thread_ts,
        }
    )


def parse_modal_submission(body: dict) -> ModalSubmitted:
    view = _require(body, "view")
    raw_metadata = view.get("private_metadata") or ""
    try:
        metadata = json.loads(raw_metadata)
    except json.JSONDecodeError as exc:
        raise MalformedPayload(f"modal metadata is not JSON: {raw_metadata!r}") from exc
    if not isinstance(metadata, dict):
        raise MalformedPayload("modal metadata must be a JSON object")

    values = (view.get("state") or {}).get("values") or {}
    comment = ((values.get(COMMENT_BLOCK_ID) or {}).get(COMMENT_ACTION_ID) or {}).get("value")

    return ModalSubmitted(
        routing=RoutingPayload.from_dict(metadata),
        location=CardLocation(
            channel_id=_require(metadata, "channel_id"),
            message_ts=_require(metadata, "message_ts"),
            thread_ts=metadata.get("thread_ts"),
        ),
        user_id=_require(body, "user", "id"),
        comment=comment.strip() if comment and comment.strip() else None,
    )

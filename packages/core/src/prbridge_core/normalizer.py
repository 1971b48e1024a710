"""Map GitHub's pull request JSON onto a ReviewRequest."""

from __future__ import annotations

from collections.abc import Mapping

from prbridge_core.errors import MalformedPayload
from prbridge_core.models import CLOSED, LIFECYCLE_STATES, MERGED, NOT_YET_COMPUTED, ReviewRequest


def _int(payload: Mapping, key: str) -> int:
    value = payload.get(key)
    if value is None:
        return 0
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise MalformedPayload(f"field {key!r} is not a number: {value!r}") from exc


def _section(payload: Mapping, key: str) -> Mapping:
    value = payload.get(key) or {}
    if not isinstance(value, Mapping):
        raise MalformedPayload(f"field {key!r} is not an object: {value!r}")
    return value


def _lifecycle_state(payload: Mapping) -> str:
    state = str(payload["state"]).lower()
    # GitHub reports merged pull requests as closed with a merge marker.
    if state == CLOSED and (payload.get("merged") or payload.get("merged_at")):
        return MERGED
    if state not in LIFECYCLE_STATES:
        raise MalformedPayload(f"unknown pull request state: {payload['state']!r}")
    return state


def normalize_pull_request(payload: Mapping) -> ReviewRequest:
    """Validate a raw pull request payload and reduce it to a ReviewRequest.

    Raises MalformedPayload when id, number, title, state or the author's
    login is absent. Optional counters default to zero and a missing
    mergeable_state means GitHub has not computed it yet.
    """
    if not isinstance(payload, Mapping):
        raise MalformedPayload(f"expected a mapping, got {type(payload).__name__}")

    user = _section(payload, "user")
    missing = [key for key in ("id", "number", "state") if payload.get(key) is None]
    if not payload.get("title"):
        missing.append("title")
    if not user.get("login"):
        missing.append("user.login")
    if missing:
        raise MalformedPayload(f"pull request payload missing {', '.join(missing)}")

    head = _section(payload, "head")
    base = _section(payload, "base")

    return ReviewRequest(
        id=_int(payload, "id"),
        number=_int(payload, "number"),
        title=str(payload["title"]),
        state=_lifecycle_state(payload),
        author_login=str(user["login"]),
        body=payload.get("body"),
        draft=bool(payload.get("draft")),
        author_avatar_url=user.get("avatar_url"),
        source_branch=head.get("ref") or "",
        target_branch=base.get("ref") or "",
        head_sha=head.get("sha"),
        html_url=payload.get("html_url") or "",
        mergeable_state=payload.get("mergeable_state") or NOT_YET_COMPUTED,
        additions=_int(payload, "additions"),
        deletions=_int(payload, "deletions"),
        changed_files=_int(payload, "changed_files"),
        commits=_int(payload, "commits"),
        comments=_int(payload, "comments"),
        review_comments=_int(payload, "review_comments"),
        created_at=payload.get("created_at"),
        updated_at=payload.get("updated_at"),
    )

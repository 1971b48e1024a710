"""Data contract of the card state machine.

Decoupled from both Slack and PyGithub: the normalizer builds these records
from raw GitHub JSON and the renderer/transition engine consume them.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from typing import Union

from prbridge_core.errors import MalformedPayload

OPEN = "open"
CLOSED = "closed"
MERGED = "merged"
LIFECYCLE_STATES = (OPEN, CLOSED, MERGED)

NOT_YET_COMPUTED = "not-yet-computed"


@dataclass(frozen=True)
class ReviewRequest:
    """A pull request reduced to the fields the card needs."""

    id: int
    number: int
    title: str
    state: str  # "open" | "closed" | "merged"
    author_login: str
    body: str | None = None
    draft: bool = False
    author_avatar_url: str | None = None
    source_branch: str = ""
    target_branch: str = ""
    head_sha: str | None = None
    html_url: str = ""
    mergeable_state: str = NOT_YET_COMPUTED
    additions: int = 0
    deletions: int = 0
    changed_files: int = 0
    commits: int = 0
    comments: int = 0
    review_comments: int = 0
    created_at: str | None = None  # ISO-8601, as GitHub sends it
    updated_at: str | None = None

    @property
    def is_actionable(self) -> bool:
        """True when approve / request-changes controls may be offered."""
        return self.state == OPEN and not self.draft


@dataclass(frozen=True)
class Approved:
    actor_name: str


@dataclass(frozen=True)
class ChangesRequested:
    actor_name: str
    comment: str | None = None


OutcomeEvent = Union[Approved, ChangesRequested]


@dataclass(frozen=True)
class RoutingPayload:
    """The only state Slack carries between rendering a card and acting on it.

    Serialized into button values and modal metadata with the wire key
    ``pull_number`` so payloads already sitting in Slack keep working.
    """

    owner: str
    repo: str
    pull_number: int

    def to_json(self) -> str:
        return json.dumps(asdict(self))

    @classmethod
    def from_json(cls, raw: str | None) -> RoutingPayload:
        try:
            data = json.loads(raw or "")
        except json.JSONDecodeError as exc:
            raise MalformedPayload(f"routing payload is not JSON: {raw!r}") from exc
        if not isinstance(data, dict):
            raise MalformedPayload("routing payload must be a JSON object")
        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: dict) -> RoutingPayload:
        missing = [key for key in ("owner", "repo", "pull_number") if not data.get(key)]
        if missing:
            raise MalformedPayload(f"routing payload missing {', '.join(missing)}")
        try:
            number = int(data["pull_number"])
        except (TypeError, ValueError) as exc:
            raise MalformedPayload(f"invalid pull_number: {data['pull_number']!r}") from exc
        return cls(owner=str(data["owner"]), repo=str(data["repo"]), pull_number=number)

    @property
    def slug(self) -> str:
        return f"{self.owner}/{self.repo}#{self.pull_number}"

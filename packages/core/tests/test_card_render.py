"""Tests for rendering pull requests as Slack cards."""

import json

from prbridge_core.card import (
    ACTION_ROW,
    DESCRIPTION,
    DIVIDER,
    STATS,
    SUMMARY,
    block_kind,
    card_fallback_text,
    find_block,
    render_card,
)
from prbridge_core.models import ReviewRequest


def _request(**overrides):
    fields = dict(
        id=123456789,
        number=42,
        title="Add awesome new feature",
        state="open",
        author_login="developer123",
        body="short text",
        draft=False,
        author_avatar_url="https://avatars.githubusercontent.com/u/123456?v=4",
        source_branch="feature/awesome-feature",
        target_branch="main",
        html_url="https://github.com/myorg/myrepo/pull/42",
        mergeable_state="clean",
        additions=150,
        deletions=25,
        changed_files=8,
    )
    fields.update(overrides)
    return ReviewRequest(**fields)


def _render(**overrides):
    return render_card(_request(**overrides), "myorg", "myrepo", 42)


def _kinds(card):
    return [block_kind(block) for block in card]


def _description_text(card):
    block = card[find_block(card, DESCRIPTION)]
    header, _, text = block["text"]["text"].partition("\n")
    assert header == "*Description:*"
    return text


def _status_field(card):
    return card[find_block(card, STATS)]["fields"][3]["text"]


class TestCardLayout:
    def test_open_pull_request_has_five_blocks(self):
        assert _kinds(_render()) == [SUMMARY, DESCRIPTION, STATS, ACTION_ROW, DIVIDER]

    def test_draft_has_no_action_row(self):
        assert _kinds(_render(draft=True)) == [SUMMARY, DESCRIPTION, STATS, DIVIDER]

    def test_closed_has_no_action_row(self):
        assert ACTION_ROW not in _kinds(_render(state="closed"))

    def test_merged_has_no_action_row(self):
        assert ACTION_ROW not in _kinds(_render(state="merged"))

    def test_closed_draft_has_no_action_row(self):
        assert ACTION_ROW not in _kinds(_render(state="closed", draft=True))

    def test_divider_is_always_last(self):
        for overrides in ({}, {"draft": True}, {"state": "closed"}, {"body": None}):
            card = _render(**overrides)
            assert card[-1] == {"type": "divider", "block_id": "pr_divider"}

    def test_block_ids_are_unique(self):
        ids = [block["block_id"] for block in _render()]
        assert len(ids) == len(set(ids))

    def test_rendering_is_deterministic(self):
        assert _render() == _render()


class TestSummaryBlock:
    def test_open_glyph_title_link_and_subtitle(self):
        text = _render()[0]["text"]["text"]
        assert text == "*🟢 <https://github.com/myorg/myrepo/pull/42|Add awesome new feature>*\nmyorg/myrepo #42"

    def test_draft_glyph_wins_over_state(self):
        text = _render(draft=True)[0]["text"]["text"]
        assert text.startswith("*🚧 ")
        assert "🟢" not in text

    def test_closed_glyph(self):
        assert _render(state="closed")[0]["text"]["text"].startswith("*🔴 ")

    def test_merged_glyph(self):
        assert _render(state="merged")[0]["text"]["text"].startswith("*🟣 ")

    def test_title_is_escaped(self):
        text = _render(title="Use <T> & friends")[0]["text"]["text"]
        assert "Use &lt;T&gt; &amp; friends" in text

    def test_avatar_accessory(self):
        accessory = _render()[0]["accessory"]
        assert accessory == {
            "type": "image",
            "image_url": "https://avatars.githubusercontent.com/u/123456?v=4",
            "alt_text": "developer123",
        }

    def test_no_accessory_without_avatar(self):
        assert "accessory" not in _render(author_avatar_url=None)[0]


class TestDescriptionBlock:
    def test_short_body_is_verbatim(self):
        assert _description_text(_render(body="short text")) == "short text"

    def test_body_of_exactly_300_chars_is_verbatim(self):
        body = "x" * 300
        assert _description_text(_render(body=body)) == body

    def test_long_body_is_cut_at_300_chars(self):
        body = "word " * 100
        assert _description_text(_render(body=body)) == body[:300] + "..."

    def test_cut_ignores_word_boundaries(self):
        body = "a" * 299 + "bcdef"
        assert _description_text(_render(body=body)) == "a" * 299 + "b..."

    def test_multiline_body_kept(self):
        body = "Line one\n\n## Changes\n- thing"
        assert _description_text(_render(body=body)) == body

    def test_empty_body_has_no_description(self):
        assert DESCRIPTION not in _kinds(_render(body=""))

    def test_whitespace_body_has_no_description(self):
        assert DESCRIPTION not in _kinds(_render(body="  \n\t "))

    def test_null_body_has_no_description(self):
        assert _kinds(_render(body=None)) == [SUMMARY, STATS, ACTION_ROW, DIVIDER]


class TestStatsBlock:
    def test_fields_in_fixed_order(self):
        fields = [f["text"] for f in _render()[2]["fields"]]
        assert fields == [
            "*Author:*\ndeveloper123",
            "*Branch:*\nfeature/awesome-feature → main",
            "*Changes:*\n+150 -25 (8 files)",
            "*Status:*\n✅ Ready to merge",
        ]

    def test_mergeable_labels(self):
        expected = {
            "clean": "✅ Ready to merge",
            "dirty": "❌ Merge conflicts",
            "unstable": "⚠️ Checks failing",
            "blocked": "🚫 Blocked",
            "unknown": "❓ Checking...",
            "not-yet-computed": "❓ Unknown",
            "behind": "❓ Unknown",
        }
        for state, label in expected.items():
            assert _status_field(_render(mergeable_state=state)) == f"*Status:*\n{label}"


class TestActionRow:
    def _elements(self):
        card = _render()
        return card[find_block(card, ACTION_ROW)]["elements"]

    def test_three_controls(self):
        assert [e["action_id"] for e in self._elements()] == ["approve_pr", "request_changes", "view_github"]

    def test_routing_payload_on_decision_buttons(self):
        approve, request_changes, _ = self._elements()
        expected = {"owner": "myorg", "repo": "myrepo", "pull_number": 42}
        assert json.loads(approve["value"]) == expected
        assert json.loads(request_changes["value"]) == expected

    def test_button_styles(self):
        approve, request_changes, _ = self._elements()
        assert approve["style"] == "primary"
        assert request_changes["style"] == "danger"

    def test_view_button_links_to_pull_request(self):
        view = self._elements()[2]
        assert view["url"] == "https://github.com/myorg/myrepo/pull/42"
        assert "value" not in view


class TestBlockKind:
    def test_blocks_without_ids_fall_back_to_type(self):
        assert block_kind({"type": "actions", "block_id": "a1B2"}) == ACTION_ROW
        assert block_kind({"type": "divider"}) == DIVIDER

    def test_unknown_block(self):
        assert block_kind({"type": "section", "block_id": "random"}) is None


def test_fallback_text():
    assert card_fallback_text(_request()) == "GitHub PR: Add awesome new feature"

"""Slack listeners that drive the card state machine.

Every action and view submission is acknowledged before any other work so
Slack's three-second deadline is never at risk. Decisions then follow one
read-modify-write cycle per card:

    fetch card from Slack → refuse if decided → submit review to GitHub
    → apply_outcome() → chat.update on the same message

Failures are logged and reported to the acting user as an ephemeral
message. Nothing is retried; the card keeps its buttons when a step fails,
so clicking again is safe.
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Callable, Optional

from slack_sdk.errors import SlackApiError

from prbridge_core.card import (
    APPROVE_ACTION_ID,
    REQUEST_CHANGES_ACTION_ID,
    VIEW_ACTION_ID,
    apply_outcome,
    card_fallback_text,
    is_decided,
    outcome_fallback_text,
    render_card,
)
from prbridge_core.errors import AlreadyDecided, AuthError, EmptyCard, MalformedPayload, PRBridgeError
from prbridge_core.gh.pull_request import ReviewPlatform
from prbridge_core.models import Approved, ChangesRequested, OutcomeEvent, RoutingPayload
from prbridge_core.normalizer import normalize_pull_request
from prbridge_slack.events import (
    PR_URL_PATTERN,
    CardLocation,
    LinkMention,
    parse_action,
    parse_link_mentions,
    parse_modal_submission,
)
from prbridge_slack.views import REQUEST_CHANGES_CALLBACK_ID, build_request_changes_modal

logger = logging.getLogger(__name__)

CredentialResolver = Callable[[str], Optional[str]]


class KeyedLocks:
    """One lock per key, dropped again once nobody holds or waits on it."""

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: dict = {}

    @contextmanager
    def hold(self, key):
        with self._guard:
            entry = self._locks.setdefault(key, [threading.Lock(), 0])
            entry[1] += 1
        try:
            with entry[0]:
                yield
        finally:
            with self._guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._locks[key]

    def __len__(self) -> int:
        return len(self._locks)


def _slack_error(exc: SlackApiError) -> str:
    response = getattr(exc, "response", None)
    if response is not None:
        return response.get("error") or str(exc)
    return str(exc)


class ReviewBridge:
    """Relays pull request cards and review decisions between Slack and GitHub."""

    def __init__(
        self,
        platform: ReviewPlatform,
        resolve_credential: CredentialResolver,
        require_write_access: bool = False,
        bot_credential: Optional[str] = None,
    ):
        self._platform = platform
        self._resolve_credential = resolve_credential
        self._require_write_access = require_write_access
        self._bot_credential = bot_credential
        self._locks = KeyedLocks()

    def register(self, app) -> None:
        """Attach every listener to a slack_bolt App."""
        app.message(PR_URL_PATTERN)(self.handle_message)
        app.action(APPROVE_ACTION_ID)(self.handle_approve)
        app.action(REQUEST_CHANGES_ACTION_ID)(self.handle_request_changes)
        app.action(VIEW_ACTION_ID)(self.handle_view_link)
        app.view(REQUEST_CHANGES_CALLBACK_ID)(self.handle_changes_submitted)

    # ------------------------------------------------------------------ #
    # Listeners                                                            #
    # ------------------------------------------------------------------ #

    def handle_message(self, message, client):
        # Bot posts (our own cards included) and edits/joins never trigger a card.
        if message.get("subtype") or message.get("bot_id"):
            return
        try:
            mentions = parse_link_mentions(message)
        except MalformedPayload as e:
            logger.warning("Ignoring message with unexpected shape: %s", e)
            return
        for mention in mentions:
            self.post_card(client, mention)

    def handle_approve(self, ack, body, client):
        ack()
        try:
            action = parse_action(body)
        except MalformedPayload as e:
            self._report_unparsed(client, body, e)
            return
        routing = action.routing
        logger.info("Approval requested for %s by %s", routing.slug, action.user_id)
        self._decide(
            client,
            routing,
            action.location,
            action.user_id,
            make_outcome=Approved,
            submit=lambda credential: self._platform.submit_approval(
                routing.owner, routing.repo, routing.pull_number, credential
            ),
        )

    def handle_request_changes(self, ack, body, client):
        ack()
        try:
            action = parse_action(body)
            client.views_open(
                trigger_id=action.trigger_id,
                view=build_request_changes_modal(action.routing, action.location),
            )
        except MalformedPayload as e:
            self._report_unparsed(client, body, e)
        except SlackApiError as e:
            logger.error("Could not open request-changes modal: %s", _slack_error(e))
            self._notify_raw(client, body, "❌ Could not open the request-changes dialog.")

    def handle_view_link(self, ack):
        # The button is a plain link; Slack still expects an acknowledgement.
        ack()

    def handle_changes_submitted(self, ack, body, client):
        ack()
        try:
            submission = parse_modal_submission(body)
        except MalformedPayload as e:
            logger.error("Dropping request-changes submission: %s", e)
            return
        routing = submission.routing
        comment = submission.comment
        logger.info("Changes requested for %s by %s", routing.slug, submission.user_id)
        self._decide(
            client,
            routing,
            submission.location,
            submission.user_id,
            make_outcome=lambda actor: ChangesRequested(actor, comment),
            submit=lambda credential: self._platform.submit_changes_requested(
                routing.owner, routing.repo, routing.pull_number, comment, credential
            ),
        )

    # ------------------------------------------------------------------ #
    # Card lifecycle                                                       #
    # ------------------------------------------------------------------ #

    def post_card(self, client, mention: LinkMention) -> None:
        routing = mention.routing
        logger.info("GitHub PR link detected: %s in channel %s", routing.slug, mention.channel_id)
        try:
            payload = self._platform.fetch_review_request(routing.owner, routing.repo, routing.pull_number)
            request = normalize_pull_request(payload)
            blocks = render_card(request, routing.owner, routing.repo, routing.pull_number)
            client.chat_postMessage(
                channel=mention.channel_id,
                thread_ts=mention.reply_ts,
                blocks=blocks,
                text=card_fallback_text(request),
            )
        except PRBridgeError as e:
            logger.error("Could not build card for %s: %s", routing.slug, e)
            if mention.user_id:
                self._notify(
                    client,
                    mention.channel_id,
                    mention.user_id,
                    f"❌ {routing.slug}: {e.describe()}",
                    thread_ts=mention.reply_ts,
                )
            return
        except SlackApiError as e:
            logger.error("Could not post card for %s: %s", routing.slug, _slack_error(e))
            return
        logger.info("Posted card for %s", routing.slug)

    def _decide(
        self,
        client,
        routing: RoutingPayload,
        location: CardLocation,
        user_id: str,
        make_outcome: Callable[[str], OutcomeEvent],
        submit: Callable[[Optional[str]], None],
    ) -> None:
        with self._locks.hold(location.key):
            try:
                card = self.fetch_card(client, location)
                if is_decided(card):
                    raise AlreadyDecided()
                credential = self._credential_for(user_id, routing)
                actor = self._display_name(client, user_id)
                submit(credential)
                outcome = make_outcome(actor)
                blocks = apply_outcome(card, outcome)
                client.chat_update(
                    channel=location.channel_id,
                    ts=location.message_ts,
                    blocks=blocks,
                    text=outcome_fallback_text(outcome),
                )
            except PRBridgeError as e:
                logger.error("Decision on %s failed: %s", routing.slug, e)
                self._notify(
                    client, location.channel_id, user_id, f"❌ {e.describe()}", thread_ts=location.thread_ts
                )
                return
            except SlackApiError as e:
                logger.error("Slack call failed while deciding %s: %s", routing.slug, _slack_error(e))
                self._notify(
                    client,
                    location.channel_id,
                    user_id,
                    f"❌ Slack error while updating {routing.slug}: {_slack_error(e)}",
                    thread_ts=location.thread_ts,
                )
                return
        logger.info("Updated card for %s", routing.slug)

    def fetch_card(self, client, location: CardLocation) -> list[dict]:
        """Read the card's current blocks back from Slack."""
        if location.thread_ts and location.thread_ts != location.message_ts:
            response = client.conversations_replies(
                channel=location.channel_id,
                ts=location.thread_ts,
                oldest=location.message_ts,
                inclusive=True,
            )
        else:
            response = client.conversations_history(
                channel=location.channel_id,
                latest=location.message_ts,
                inclusive=True,
                limit=1,
            )
        for message in response.get("messages") or []:
            if message.get("ts") == location.message_ts:
                return list(message.get("blocks") or [])
        raise EmptyCard(f"card message {location.message_ts} not found in {location.channel_id}")

    # ------------------------------------------------------------------ #
    # Helpers                                                              #
    # ------------------------------------------------------------------ #

    def _credential_for(self, user_id: str, routing: RoutingPayload) -> Optional[str]:
        credential = self._resolve_credential(user_id)
        if credential is None:
            raise AuthError("No GitHub token is configured for your Slack account.")
        if self._require_write_access:
            # The bot token would be checked instead of the person clicking.
            if self._bot_credential is not None and credential == self._bot_credential:
                raise AuthError("Reviewing this repository requires your own GitHub token.")
            login = self._platform.authenticated_login(credential)
            if not self._platform.check_write_access(routing.owner, routing.repo, login):
                raise AuthError(f"{login} does not have write access to {routing.owner}/{routing.repo}.")
        return credential

    def _display_name(self, client, user_id: str) -> str:
        try:
            user = client.users_info(user=user_id)["user"]
        except SlackApiError as e:
            logger.warning("Could not look up Slack user %s: %s", user_id, _slack_error(e))
            return user_id
        return user.get("real_name") or user.get("name") or user_id

    def _notify(self, client, channel_id: str, user_id: str, text: str, thread_ts: Optional[str] = None) -> None:
        kwargs = {"thread_ts": thread_ts} if thread_ts else {}
        try:
            client.chat_postEphemeral(channel=channel_id, user=user_id, text=text, **kwargs)
        except SlackApiError as e:
            logger.error("Could not notify %s: %s", user_id, _slack_error(e))

    def _notify_raw(self, client, body: dict, text: str) -> None:
        channel_id = (body.get("channel") or {}).get("id")
        user_id = (body.get("user") or {}).get("id")
        thread_ts = (body.get("message") or {}).get("thread_ts")
        if channel_id and user_id:
            self._notify(client, channel_id, user_id, text, thread_ts=thread_ts)

    def _report_unparsed(self, client, body: dict, error: MalformedPayload) -> None:
        logger.error("Dropping action with unexpected payload: %s", error)
        self._notify_raw(client, body, f"❌ {error.describe()}")

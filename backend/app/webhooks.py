"""Webhook delivery handling, independent of the HTTP framework.

Every handler returns a :class:`WebhookResponse`; business-logic rejections
are always 4xx, only unexpected exceptions escape to become a 5xx.
"""

from __future__ import annotations

import hashlib
import hmac
import json
import logging
from dataclasses import dataclass
from http import HTTPStatus
from typing import Any

from app.bot import ReleaseBot
from app.effects import EFFECTS, Effect
from app.events import (
    SUPPORTED_GITHUB_EVENTS,
    GitHubEvent,
    InvalidPayload,
    StoryStateChange,
    parse_github_event,
    parse_shortcut_payload,
)
from automation.github.search import PullRequestReference, search_open_production_prs
from automation.parallel import map_concurrently
from automation.release.reconcile import QAVerificationResult
from automation.shortcut.stories import story_reference

logger = logging.getLogger("release-bot.webhooks")


@dataclass(frozen=True)
class WebhookResponse:
    status: int
    message: str


def verify_signature(secret: str, body: bytes, signature_header: str, prefix: str = "sha256=") -> bool:
    if not secret:
        return False
    if not signature_header.startswith(prefix):
        return False
    expected = prefix + hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()
    return hmac.compare_digest(expected, signature_header)


def _parse_json(body: bytes) -> Any:
    try:
        return json.loads(body.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError):
        return None


def run_effects(bot: ReleaseBot, event: GitHubEvent, effects: list[Effect] | None = None) -> list[str]:
    messages: list[str] = []
    for effect in EFFECTS if effects is None else effects:
        if not effect.should_run(bot, event):
            messages.append(f"Skipped {effect.name} effect")
            continue
        try:
            message = effect.run(bot, event)
        except Exception as exc:
            logger.exception("effect %s failed for %s", effect.name, event.repository.full_name)
            message = f"Error running effect {effect.name}: {exc}"
        if message:
            messages.append(message)
    return messages


def handle_github_delivery(
    bot: ReleaseBot,
    body: bytes,
    event_name: str,
    signature: str = "",
    secret: str = "",
    effects: list[Effect] | None = None,
) -> WebhookResponse:
    if not body:
        return WebhookResponse(HTTPStatus.BAD_REQUEST, "No body provided")
    if not event_name:
        return WebhookResponse(HTTPStatus.PRECONDITION_FAILED, "No X-GitHub-Event found on request")
    if secret and not verify_signature(secret, body, signature):
        return WebhookResponse(HTTPStatus.UNAUTHORIZED, "bad signature")
    if event_name == "ping":
        return WebhookResponse(HTTPStatus.OK, "pong")
    if event_name not in SUPPORTED_GITHUB_EVENTS:
        return WebhookResponse(HTTPStatus.PRECONDITION_FAILED, f"Unsupported X-GitHub-Event; [{event_name}]")

    payload = _parse_json(body)
    if payload is None:
        return WebhookResponse(HTTPStatus.BAD_REQUEST, "Invalid JSON payload")
    try:
        event = parse_github_event(event_name, payload)
    except InvalidPayload as exc:
        return WebhookResponse(HTTPStatus.BAD_REQUEST, str(exc))

    logger.info("github delivery event=%s repo=%s", event_name, event.repository.full_name)
    messages = run_effects(bot, event, effects)
    return WebhookResponse(HTTPStatus.OK, "\n".join(["Processed", *messages]))


def _reverify(bot: ReleaseBot, pr: PullRequestReference) -> QAVerificationResult | None:
    try:
        return bot.reconciler.reconcile(pr.owner, pr.repo, pr.number)
    except Exception:
        logger.exception("re-verification failed for %s", pr)
        return None


def _is_qa_transition(bot: ReleaseBot, change: StoryStateChange) -> bool:
    relevant = {bot.config.qa_workflow_state_id, bot.config.ready_to_ship_workflow_state_id}
    return change.new_state_id in relevant or change.old_state_id in relevant


def handle_shortcut_delivery(bot: ReleaseBot, body: bytes, signature: str = "", secret: str = "") -> WebhookResponse:
    if not body:
        return WebhookResponse(HTTPStatus.BAD_REQUEST, "No body provided")
    if secret and not verify_signature(secret, body, signature, prefix=""):
        return WebhookResponse(HTTPStatus.UNAUTHORIZED, "bad signature")

    payload = _parse_json(body)
    if payload is None:
        return WebhookResponse(HTTPStatus.BAD_REQUEST, "Invalid JSON payload")
    if not isinstance(payload, dict) or not isinstance(payload.get("actions"), list):
        return WebhookResponse(HTTPStatus.BAD_REQUEST, "Invalid webhook payload: missing actions")
    try:
        changes = parse_shortcut_payload(payload)
    except InvalidPayload as exc:
        return WebhookResponse(HTTPStatus.BAD_REQUEST, str(exc))

    logger.info("received Shortcut webhook %s", payload.get("id", "<unknown>"))

    messages = []
    for change in changes:
        if not _is_qa_transition(bot, change):
            continue
        ref = story_reference(change.story_id)
        logger.info(
            "%s moved from state %s to %s, triggering re-verification",
            ref,
            change.old_state_id,
            change.new_state_id,
        )
        prs = search_open_production_prs(bot.github, bot.config.organization, change.story_id)
        map_concurrently(lambda pr: _reverify(bot, pr), prs)
        messages.append(f"Re-verified {len(prs)} PRs for story {ref}")

    if not messages:
        return WebhookResponse(HTTPStatus.OK, "Webhook received but no action taken")
    return WebhookResponse(HTTPStatus.OK, "\n".join(messages))

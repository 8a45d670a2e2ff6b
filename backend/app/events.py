"""Inbound webhook payloads, validated and narrowed to the fields the bot uses."""

from __future__ import annotations

import json
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Union

from jsonschema import Draft202012Validator

from automation.config import SCHEMA_DIR
from automation.release.branches import branch_from_ref

SUPPORTED_GITHUB_EVENTS = ("pull_request", "push", "issue_comment")


class InvalidPayload(ValueError):
    """Raised when a webhook payload does not match its event schema."""


@lru_cache(maxsize=None)
def _load_schema(name: str) -> dict[str, Any]:
    return json.loads((SCHEMA_DIR / name).read_text(encoding="utf-8"))


def _validate(schema: dict[str, Any], payload: Any) -> None:
    errors = sorted(Draft202012Validator(schema).iter_errors(payload), key=lambda e: list(e.absolute_path))
    if errors:
        first = errors[0]
        path = "/".join(str(p) for p in first.absolute_path) or "<root>"
        raise InvalidPayload(f"invalid payload at {path}: {first.message}")


@dataclass(frozen=True)
class Repository:
    owner: str
    name: str

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"


@dataclass(frozen=True)
class PullRequestEvent:
    action: str
    number: int
    repository: Repository
    base_ref: str
    head_ref: str
    title: str
    body: str
    merged: bool
    labels: tuple[str, ...]
    name: str = "pull_request"


@dataclass(frozen=True)
class PushEvent:
    ref: str
    repository: Repository
    head_commit_id: str
    head_commit_message: str
    head_commit_url: str
    name: str = "push"

    @property
    def branch(self) -> str:
        return branch_from_ref(self.ref)


@dataclass(frozen=True)
class IssueCommentEvent:
    action: str
    issue_number: int
    is_pull_request: bool
    comment_body: str
    repository: Repository
    name: str = "issue_comment"


GitHubEvent = Union[PullRequestEvent, PushEvent, IssueCommentEvent]


def _repository(payload: dict[str, Any]) -> Repository:
    repo = payload["repository"]
    return Repository(owner=repo["owner"]["login"], name=repo["name"])


def parse_github_event(event_name: str, payload: Any) -> GitHubEvent:
    if event_name not in SUPPORTED_GITHUB_EVENTS:
        raise InvalidPayload(f"Unsupported X-GitHub-Event; [{event_name}]")
    _validate({**_load_schema("github-events.schema.json"), "$ref": f"#/$defs/{event_name}"}, payload)

    if event_name == "pull_request":
        pr = payload["pull_request"]
        return PullRequestEvent(
            action=payload["action"],
            number=int(payload["number"]),
            repository=_repository(payload),
            base_ref=pr["base"]["ref"],
            head_ref=pr["head"]["ref"],
            title=pr.get("title") or "",
            body=pr.get("body") or "",
            merged=bool(pr.get("merged")),
            labels=tuple(x["name"] for x in pr.get("labels", [])),
        )

    if event_name == "push":
        head_commit = payload.get("head_commit") or {}
        return PushEvent(
            ref=payload["ref"],
            repository=_repository(payload),
            head_commit_id=head_commit.get("id", ""),
            head_commit_message=head_commit.get("message", ""),
            head_commit_url=head_commit.get("url", ""),
        )

    issue = payload["issue"]
    return IssueCommentEvent(
        action=payload["action"],
        issue_number=int(issue["number"]),
        is_pull_request=bool(issue.get("pull_request")),
        comment_body=payload["comment"].get("body") or "",
        repository=_repository(payload),
    )


@dataclass(frozen=True)
class StoryStateChange:
    story_id: int
    old_state_id: int | None
    new_state_id: int | None


def parse_shortcut_payload(payload: Any) -> list[StoryStateChange]:
    """Story workflow-state changes carried by a Shortcut webhook batch."""
    _validate(_load_schema("shortcut-webhook.schema.json"), payload)
    changes = []
    for action in payload["actions"]:
        if action.get("entity_type") != "story" or action.get("action") != "update":
            continue
        state_change = (action.get("changes") or {}).get("workflow_state_id")
        if not state_change or "id" not in action:
            continue
        changes.append(
            StoryStateChange(
                story_id=int(action["id"]),
                old_state_id=state_change.get("old"),
                new_state_id=state_change.get("new"),
            )
        )
    return changes

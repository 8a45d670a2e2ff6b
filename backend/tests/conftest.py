from __future__ import annotations

from typing import Any

import pytest

from app.bot import ReleaseBot
from automation.config import QA_WORKFLOW_STATE_ID, READY_TO_SHIP_WORKFLOW_STATE_ID
from automation.shortcut.client import Story

PRODUCTION_HOOK = "https://hooks.slack.example/production"
STAGING_HOOK = "https://hooks.slack.example/staging"


@pytest.fixture
def release_bot(fake_github, fake_shortcut, fake_slack, bot_config) -> ReleaseBot:
    fake_shortcut.stories.update(
        {
            3: Story(3, "Fix login", READY_TO_SHIP_WORKFLOW_STATE_ID),
            9: Story(9, "Add logout", QA_WORKFLOW_STATE_ID),
        }
    )
    return ReleaseBot(
        github=fake_github,
        shortcut=fake_shortcut,
        slack=fake_slack,
        config=bot_config,
        slack_webhook_production=PRODUCTION_HOOK,
        slack_webhook_staging=STAGING_HOOK,
    )


def _repository(name: str = "backend-api", owner: str = "Org") -> dict[str, Any]:
    return {"name": name, "full_name": f"{owner}/{name}", "owner": {"login": owner}}


def _pull_request_payload(
    action: str = "opened",
    number: int = 10,
    base: str = "main",
    head: str = "sc-3/feature",
    repo: str = "backend-api",
    merged: bool = False,
    labels: list[str] | None = None,
    body: str | None = "",
) -> dict[str, Any]:
    return {
        "action": action,
        "number": number,
        "repository": _repository(repo),
        "pull_request": {
            "title": "Some change",
            "body": body,
            "merged": merged,
            "base": {"ref": base},
            "head": {"ref": head},
            "labels": [{"name": name} for name in labels or []],
        },
    }


def _push_payload(ref: str = "refs/heads/main", message: str = "Fix typo", repo: str = "backend-api") -> dict[str, Any]:
    return {
        "ref": ref,
        "repository": _repository(repo),
        "head_commit": {
            "id": "abc1234def5678",
            "message": message,
            "url": f"https://github.com/Org/{repo}/commit/abc1234def5678",
        },
    }


def _issue_comment_payload(body: str, number: int = 10, on_pr: bool = True, repo: str = "backend-api") -> dict[str, Any]:
    issue: dict[str, Any] = {"number": number}
    if on_pr:
        issue["pull_request"] = {"url": f"https://api.github.com/repos/Org/{repo}/pulls/{number}"}
    return {"action": "created", "issue": issue, "comment": {"body": body}, "repository": _repository(repo)}


def _story_update_action(story_id: int, old: int, new: int) -> dict[str, Any]:
    return {
        "id": story_id,
        "entity_type": "story",
        "action": "update",
        "changes": {"workflow_state_id": {"old": old, "new": new}},
    }


@pytest.fixture
def pr_payload():
    return _pull_request_payload


@pytest.fixture
def push_payload():
    return _push_payload


@pytest.fixture
def comment_payload():
    return _issue_comment_payload


@pytest.fixture
def story_update():
    return _story_update_action

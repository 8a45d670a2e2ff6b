from __future__ import annotations

import logging
from dataclasses import dataclass

from automation.github.client import GitHubError

UNTESTED_LABEL = "untested"

logger = logging.getLogger("release-bot.labels")


@dataclass(frozen=True)
class LabelDefinition:
    name: str = UNTESTED_LABEL
    color: str = "ff4848"
    description: str = "PR contains stories that have not been QA'd"


class QALabelManager:
    """Keeps the sentinel "untested" label on a PR in line with its QA readiness."""

    def __init__(self, github, label: LabelDefinition | None = None) -> None:
        self.github = github
        self.label = label or LabelDefinition()

    def ensure_label_definition(self, owner: str, repo: str) -> None:
        try:
            self.github.get_label(owner, repo, self.label.name)
            return
        except GitHubError as exc:
            if exc.status != 404:
                logger.warning("failed to look up label=%s repo=%s/%s err=%s", self.label.name, owner, repo, exc)
                return
        try:
            self.github.create_label(owner, repo, self.label.name, self.label.color, self.label.description)
            logger.info("created label=%s repo=%s/%s", self.label.name, owner, repo)
        except GitHubError as exc:
            logger.error("failed to create label=%s repo=%s/%s err=%s", self.label.name, owner, repo, exc)

    def add_label_if_missing(self, owner: str, repo: str, number: int) -> None:
        try:
            if self.label.name in self.github.list_issue_labels(owner, repo, number):
                return
            self.github.add_labels(owner, repo, number, [self.label.name])
            logger.info("added label=%s pr=%s/%s#%s", self.label.name, owner, repo, number)
        except GitHubError as exc:
            logger.error("failed to add label=%s pr=%s/%s#%s err=%s", self.label.name, owner, repo, number, exc)

    def remove_label_if_present(self, owner: str, repo: str, number: int) -> None:
        try:
            if self.label.name not in self.github.list_issue_labels(owner, repo, number):
                return
            self.github.remove_label(owner, repo, number, self.label.name)
            logger.info("removed label=%s pr=%s/%s#%s", self.label.name, owner, repo, number)
        except GitHubError as exc:
            # already gone
            if exc.status == 404:
                return
            logger.error("failed to remove label=%s pr=%s/%s#%s err=%s", self.label.name, owner, repo, number, exc)

    def reconcile_label(self, owner: str, repo: str, number: int, should_be_present: bool) -> None:
        if should_be_present:
            self.add_label_if_missing(owner, repo, number)
        else:
            self.remove_label_if_present(owner, repo, number)

"""PR story/QA reconciliation.

Resolves the Shortcut stories a pull request references, rewrites the
generated part of its description and keeps the "untested" label in step
with the stories' QA state. Safe to run any number of times for the same PR.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field

from automation.config import BotConfig
from automation.github.client import GitHubError, PullRequestDetails
from automation.github.labels import QALabelManager
from automation.github.pr_body import GeneratedSections, needs_update, reconcile_body, strip_generated_content
from automation.github.search import is_story_shipped
from automation.parallel import map_concurrently
from automation.release.branches import BranchTier, branch_tier
from automation.release.changelog import (
    ChangelogItem,
    build_changelog_items,
    render_changelog_block,
    render_shipped_notice,
)
from automation.shortcut.stories import extract_story_ids, story_reference

logger = logging.getLogger("release-bot.reconcile")


@dataclass(frozen=True)
class QAVerificationResult:
    ready: bool
    story_ids: list[int] = field(default_factory=list)
    not_ready: list[int] = field(default_factory=list)


class PullRequestReconciler:
    def __init__(self, github, shortcut, config: BotConfig, labels: QALabelManager | None = None) -> None:
        self.github = github
        self.shortcut = shortcut
        self.config = config
        self.labels = labels or QALabelManager(github, config.untested_label)
        self._tracked_files_re = re.compile(config.tracked_files_pattern)

    def has_tracked_files_changed(self, owner: str, repo: str, number: int) -> bool:
        for filenames in self.github.iter_changed_files(owner, repo, number):
            if any(self._tracked_files_re.search(name) for name in filenames):
                return True
        return False

    def _is_shipped(self, story_id: int) -> bool:
        try:
            return is_story_shipped(self.github, self.config.organization, story_id)
        except GitHubError as exc:
            logger.warning("shipped lookup failed for %s: %s", story_reference(story_id), exc)
            return False

    def _changelog_items(self, details: PullRequestDetails, story_ids: list[int]) -> list[ChangelogItem]:
        stories = self.shortcut.fetch_stories(story_ids)
        if not stories:
            return []
        shipped = map_concurrently(self._is_shipped, [s.id for s in stories])
        return build_changelog_items(
            stories,
            {s.id: flag for s, flag in zip(stories, shipped)},
            branch_tier(details.base_ref),
            self.config.ready_to_ship_workflow_state_id,
            self.config.story_web_url,
        )

    def build_changelog(self, owner: str, repo: str, number: int) -> list[ChangelogItem]:
        """Changelog items for a PR without touching it; empty when nothing resolves."""
        try:
            details = self.github.get_pr_details(owner, repo, number)
        except GitHubError as exc:
            logger.error("failed to get PR details for %s/%s#%s: %s", owner, repo, number, exc)
            return []
        story_ids = extract_story_ids(details.head_ref, details.commit_messages)
        if not story_ids:
            return []
        return self._changelog_items(details, story_ids)

    def _write_body(self, owner: str, repo: str, number: int, current: str, new_body: str) -> None:
        if not needs_update(current, new_body):
            logger.info("PR body already up to date for %s/%s#%s", owner, repo, number)
            return
        self.github.update_pull_request(owner, repo, number, body=new_body)
        logger.info("updated PR body for %s/%s#%s", owner, repo, number)

    def reconcile(self, owner: str, repo: str, number: int) -> QAVerificationResult:
        self.labels.ensure_label_definition(owner, repo)

        try:
            details = self.github.get_pr_details(owner, repo, number)
        except GitHubError as exc:
            logger.error("failed to get PR details for %s/%s#%s: %s", owner, repo, number, exc)
            self.labels.reconcile_label(owner, repo, number, should_be_present=True)
            return QAVerificationResult(ready=False)

        tier = branch_tier(details.base_ref)
        mapping_notice = self.config.tracked_files_notice
        story_ids = extract_story_ids(details.head_ref, details.commit_messages)

        if not story_ids:
            logger.info("no Shortcut stories found in PR %s/%s#%s", owner, repo, number)
            cleaned = strip_generated_content(details.body, mapping_notice)
            self._write_body(owner, repo, number, details.body, cleaned)
            self.labels.reconcile_label(owner, repo, number, should_be_present=False)
            return QAVerificationResult(ready=True)

        logger.info(
            "found %s story ids in PR %s/%s#%s: %s",
            len(story_ids),
            owner,
            repo,
            number,
            ", ".join(story_reference(i) for i in story_ids),
        )

        show_mapping_notice = self.has_tracked_files_changed(owner, repo, number)
        items = self._changelog_items(details, story_ids)

        if not items:
            logger.warning("no valid stories could be fetched for PR %s/%s#%s", owner, repo, number)
            if tier is BranchTier.PRODUCTION:
                self.labels.reconcile_label(owner, repo, number, should_be_present=True)
            return QAVerificationResult(ready=False, story_ids=story_ids, not_ready=list(story_ids))

        sections = GeneratedSections(
            shipped_notice=render_shipped_notice(items),
            changelog=render_changelog_block(items, self.config.changelog_link_style),
            mapping_notice=mapping_notice if show_mapping_notice else None,
        )
        new_body = reconcile_body(details.body, sections, mapping_notice)
        self._write_body(owner, repo, number, details.body, new_body)

        if tier is not BranchTier.PRODUCTION:
            return QAVerificationResult(ready=True, story_ids=story_ids)

        not_ready = [item for item in items if item.blocks_release]
        if not_ready:
            logger.info(
                "PR %s/%s#%s has %s stories not ready to ship: %s",
                owner,
                repo,
                number,
                len(not_ready),
                ", ".join(item.reference for item in not_ready),
            )
        else:
            logger.info("all stories in PR %s/%s#%s are ready to ship or already shipped", owner, repo, number)
        self.labels.reconcile_label(owner, repo, number, should_be_present=bool(not_ready))
        return QAVerificationResult(
            ready=not not_ready,
            story_ids=story_ids,
            not_ready=[item.story.id for item in not_ready],
        )

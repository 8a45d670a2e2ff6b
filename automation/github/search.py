"""Search queries that connect Shortcut stories back to pull requests."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from automation.github.client import GitHubError
from automation.release.branches import PRODUCTION_BRANCHES
from automation.shortcut.stories import story_reference

REPOSITORY_URL_RE = re.compile(r"repos/([^/]+)/([^/]+)$")

logger = logging.getLogger("release-bot.search")


@dataclass(frozen=True)
class PullRequestReference:
    owner: str
    repo: str
    number: int

    def __str__(self) -> str:
        return f"{self.owner}/{self.repo}#{self.number}"


def search_open_production_prs(github, organization: str | None, story_id: int) -> list[PullRequestReference]:
    """Open PRs against any production branch whose text mentions the story."""
    if not organization:
        logger.warning("no organization configured; cannot search PRs for %s", story_reference(story_id))
        return []

    results: list[PullRequestReference] = []
    seen: set[PullRequestReference] = set()
    for base_branch in PRODUCTION_BRANCHES:
        query = f"org:{organization} is:pr is:open base:{base_branch} {story_reference(story_id)}"
        try:
            data = github.search_issues(query)
        except GitHubError as exc:
            logger.error("search failed base=%s story=%s err=%s", base_branch, story_reference(story_id), exc)
            continue
        for item in data.get("items", []):
            match = REPOSITORY_URL_RE.search(item.get("repository_url", ""))
            if not match:
                continue
            ref = PullRequestReference(match.group(1), match.group(2), int(item["number"]))
            if ref not in seen:
                seen.add(ref)
                results.append(ref)

    logger.info("found %s open production PRs referencing %s", len(results), story_reference(story_id))
    return results


def is_story_shipped(github, organization: str | None, story_id: int) -> bool:
    """True when a PR mentioning the story has already been merged into a production branch."""
    if not organization:
        return False
    for base_branch in PRODUCTION_BRANCHES:
        query = f"org:{organization} is:pr is:merged base:{base_branch} {story_reference(story_id)}"
        try:
            data = github.search_issues(query, per_page=1)
        except GitHubError as exc:
            logger.warning("shipped lookup failed base=%s story=%s err=%s", base_branch, story_reference(story_id), exc)
            continue
        if int(data.get("total_count") or 0) > 0:
            return True
    return False

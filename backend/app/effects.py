"""Webhook effects.

Each effect decides for itself whether a GitHub event concerns it
(``should_run``) and then performs its side effects (``run``), returning an
optional line for the delivery response.
"""

from __future__ import annotations

import logging
import re

from app.bot import ReleaseBot
from app.events import GitHubEvent, IssueCommentEvent, PullRequestEvent, PushEvent
from automation.github.client import GitHubError
from automation.release.branches import (
    is_production_branch,
    is_regular_release,
    is_staging_branch,
    release_title,
)
from automation.release.versioning import gradle_version_name, next_release_tag

logger = logging.getLogger("release-bot.effects")

PR_SYNC_ACTIONS = {"opened", "reopened", "synchronize"}
RESYNC_COMMAND = re.compile(r"^\s*resync\s+release\s+notes\s*$", re.IGNORECASE)
MERGED_PR_RE = re.compile(r"Merge pull request #(\d+) from")


class Effect:
    name = "effect"

    def should_run(self, bot: ReleaseBot, event: GitHubEvent) -> bool:
        raise NotImplementedError

    def run(self, bot: ReleaseBot, event: GitHubEvent) -> str | None:
        raise NotImplementedError


def _update_title(bot: ReleaseBot, owner: str, repo: str, number: int, base_ref: str, head_ref: str) -> bool:
    if not is_regular_release(base_ref, head_ref):
        return False
    title = release_title(base_ref)
    if not title:
        return False
    bot.github.update_pull_request(owner, repo, number, title=title)
    logger.info("renamed %s/%s#%s to %r", owner, repo, number, title)
    return True


class UpdatePrStories(Effect):
    """Rewrite the story changelog of production/staging PRs and verify QA status."""

    name = "updatePrStories"

    def should_run(self, bot: ReleaseBot, event: GitHubEvent) -> bool:
        if not isinstance(event, PullRequestEvent) or event.action not in PR_SYNC_ACTIONS:
            return False
        return is_production_branch(event.base_ref) or is_staging_branch(event.base_ref)

    def run(self, bot: ReleaseBot, event: PullRequestEvent) -> str:
        repo = event.repository
        result = bot.reconciler.reconcile(repo.owner, repo.name, event.number)
        status = "ready" if result.ready else f"not ready ({len(result.not_ready)} stories pending QA)"
        return f"Updated PR stories and QA status for PR #{event.number}: {status}"


class RenameTitle(Effect):
    name = "renameTitle"

    def should_run(self, bot: ReleaseBot, event: GitHubEvent) -> bool:
        if not isinstance(event, PullRequestEvent) or event.action != "opened":
            return False
        if not bot.config.effect_enabled(self.name, event.repository.name):
            return False
        return is_regular_release(event.base_ref, event.head_ref)

    def run(self, bot: ReleaseBot, event: PullRequestEvent) -> str | None:
        repo = event.repository
        if _update_title(bot, repo.owner, repo.name, event.number, event.base_ref, event.head_ref):
            return f"Renamed PR #{event.number}"
        return None


class ResyncReleaseNotes(Effect):
    """``resync release notes`` comment on a PR: re-run title and story sync."""

    name = "resyncReleaseNotes"

    def should_run(self, bot: ReleaseBot, event: GitHubEvent) -> bool:
        if not isinstance(event, IssueCommentEvent):
            return False
        if event.action != "created" or not event.is_pull_request:
            return False
        if not bot.config.effect_enabled(self.name, event.repository.name):
            return False
        return bool(RESYNC_COMMAND.match(event.comment_body))

    def run(self, bot: ReleaseBot, event: IssueCommentEvent) -> str:
        repo = event.repository
        pr = bot.github.get_pull_request(repo.owner, repo.name, event.issue_number)
        _update_title(bot, repo.owner, repo.name, event.issue_number, pr["base"]["ref"], pr["head"]["ref"])
        bot.reconciler.reconcile(repo.owner, repo.name, event.issue_number)
        return f"Resynced release notes for PR #{event.issue_number}"


class TagRelease(Effect):
    """Create the next release when a PR is merged into production.

    The bump follows the PR's ``release-major``/``release-minor``/``release-patch``
    label, then the repository default, then the configured fallback.
    """

    name = "tagRelease"

    def should_run(self, bot: ReleaseBot, event: GitHubEvent) -> bool:
        if not isinstance(event, PullRequestEvent):
            return False
        if not bot.config.effect_enabled(self.name, event.repository.name):
            return False
        return is_production_branch(event.base_ref) and event.action == "closed" and event.merged

    def run(self, bot: ReleaseBot, event: PullRequestEvent) -> str:
        repo = event.repository
        releases = bot.github.list_releases(repo.owner, repo.name, per_page=1)
        latest_tag = releases[0].get("tag_name") if releases else None
        default_bump = bot.config.default_bump.get(repo.name, bot.config.fallback_bump)
        tag = next_release_tag(latest_tag, event.labels, default_bump)
        bot.github.create_release(
            repo.owner,
            repo.name,
            tag_name=tag,
            name=tag,
            body=event.body,
            make_latest="true",
            target_commitish=event.base_ref,
        )
        logger.info("tagged release %s for %s (previous %s)", tag, repo.full_name, latest_tag or "<none>")
        return f"tagRelease: created release {tag}"


class TagReleaseFromGradleFile(Effect):
    name = "tagReleaseFromGradleFile"

    def should_run(self, bot: ReleaseBot, event: GitHubEvent) -> bool:
        if not isinstance(event, PushEvent):
            return False
        if not bot.config.effect_enabled(self.name, event.repository.name):
            return False
        return is_production_branch(event.branch)

    def run(self, bot: ReleaseBot, event: PushEvent) -> str | None:
        repo = event.repository
        try:
            content = bot.github.get_file_content(repo.owner, repo.name, bot.config.gradle_file, event.branch)
        except GitHubError as exc:
            if exc.status == 404:
                return f"tagReleaseFromGradleFile: {bot.config.gradle_file} not found"
            raise
        version = gradle_version_name(content or "")
        if not version:
            return None

        release = bot.github.create_release(
            repo.owner,
            repo.name,
            tag_name=version,
            name=version,
            make_latest="true",
            target_commitish=event.branch,
        )
        notes = bot.github.generate_release_notes(repo.owner, repo.name, version)
        bot.github.update_release(repo.owner, repo.name, release["id"], tag_name=version, body=notes.get("body", ""))
        logger.info("tagged release %s for %s from %s", version, repo.full_name, bot.config.gradle_file)
        return f"tagReleaseFromGradleFile: created release {version}"


class NotifyDeployment(Effect):
    """Announce pushes to staging/production in the tier's Slack channel."""

    name = "notifyDeployment"

    def should_run(self, bot: ReleaseBot, event: GitHubEvent) -> bool:
        if not isinstance(event, PushEvent):
            return False
        return is_staging_branch(event.branch) or is_production_branch(event.branch)

    def run(self, bot: ReleaseBot, event: PushEvent) -> str:
        webhook_url = bot.slack_webhook_for(event.branch)
        if not webhook_url:
            return "notifyDeployment: no webhook url found"

        repo = event.repository
        title = f"Releasing *{repo.name}*"
        commit_hash = event.head_commit_id[:7]
        match = MERGED_PR_RE.search(event.head_commit_message)

        if not match:
            messages = [title, f"*<{event.head_commit_url}|{event.head_commit_message} ({commit_hash})>*"]
            bot.slack.send_markdown_messages(webhook_url, messages)
            return "notifyDeployment: sent slack message (no PR found)"

        pr_number = int(match.group(1))
        pr = bot.github.get_pull_request(repo.owner, repo.name, pr_number)
        url = pr.get("html_url") or event.head_commit_url
        pr_title = pr.get("title") or event.head_commit_message

        items = bot.reconciler.build_changelog(repo.owner, repo.name, pr_number)
        story_lines = "\n".join(f"<{item.story_url}|{item.reference}>: {item.story.name}" for item in items)
        show_notice = bot.reconciler.has_tracked_files_changed(repo.owner, repo.name, pr_number)

        messages = [title, f"*<{url}|{pr_title} ({commit_hash})>*"]
        if story_lines:
            messages.append("\n" + "\n".join(["```", story_lines, "```"]))
        if show_notice:
            messages.append("\n" + bot.config.tracked_files_notice)

        bot.slack.send_markdown_messages(webhook_url, messages)
        return "notifyDeployment: sent slack message"


EFFECTS: list[Effect] = [
    UpdatePrStories(),
    RenameTitle(),
    ResyncReleaseNotes(),
    TagRelease(),
    TagReleaseFromGradleFile(),
    NotifyDeployment(),
]

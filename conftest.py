from __future__ import annotations

from typing import Any

import pytest

from automation.config import BotConfig
from automation.github.client import GitHubError, PullRequestDetails
from automation.shortcut.client import Story


class FakeGitHub:
    """In-memory stand-in for GitHubClient that records every write."""

    def __init__(self) -> None:
        self.prs: dict[tuple[str, str, int], dict[str, Any]] = {}
        self.commits: dict[tuple[str, str, int], list[str]] = {}
        self.files: dict[tuple[str, str, int], list[str]] = {}
        self.issue_labels: dict[tuple[str, str, int], list[str]] = {}
        self.repo_labels: dict[tuple[str, str], set[str]] = {}
        self.search_results: dict[str, dict[str, Any]] = {}
        self.releases: dict[tuple[str, str], list[dict[str, Any]]] = {}
        self.contents: dict[tuple[str, str, str, str], str] = {}
        self.failures: dict[str, GitHubError] = {}
        self.updates: list[dict[str, Any]] = []
        self.created_labels: list[tuple[str, str, str]] = []
        self.created_releases: list[dict[str, Any]] = []
        self.updated_releases: list[dict[str, Any]] = []
        self.searches: list[str] = []
        self.files_page_size = 2

    def add_pr(
        self,
        number: int,
        *,
        owner: str = "Org",
        repo: str = "backend-api",
        head: str = "feature",
        base: str = "main",
        body: str = "",
        commits: list[str] | None = None,
        files: list[str] | None = None,
        labels: list[str] | None = None,
        title: str = "",
        html_url: str = "",
    ) -> None:
        key = (owner, repo, number)
        self.prs[key] = {
            "number": number,
            "head": {"ref": head},
            "base": {"ref": base},
            "body": body,
            "title": title,
            "html_url": html_url,
        }
        self.commits[key] = list(commits or [])
        self.files[key] = list(files or [])
        self.issue_labels[key] = list(labels or [])

    def _maybe_fail(self, method: str) -> None:
        if method in self.failures:
            raise self.failures[method]

    def body_of(self, number: int, owner: str = "Org", repo: str = "backend-api") -> str:
        return self.prs[(owner, repo, number)]["body"]

    def get_pull_request(self, owner, repo, number):
        self._maybe_fail("get_pull_request")
        try:
            return dict(self.prs[(owner, repo, number)])
        except KeyError:
            raise GitHubError(404, "Not Found") from None

    def update_pull_request(self, owner, repo, number, *, body=None, title=None):
        self._maybe_fail("update_pull_request")
        update = {"number": number}
        if body is not None:
            update["body"] = body
            self.prs[(owner, repo, number)]["body"] = body
        if title is not None:
            update["title"] = title
            self.prs[(owner, repo, number)]["title"] = title
        self.updates.append(update)
        return dict(self.prs[(owner, repo, number)])

    def list_commit_messages(self, owner, repo, number):
        return list(self.commits.get((owner, repo, number), []))

    def iter_changed_files(self, owner, repo, number, per_page=100):
        self._maybe_fail("iter_changed_files")
        files = self.files.get((owner, repo, number), [])
        size = self.files_page_size
        for start in range(0, len(files), size):
            yield files[start : start + size]

    def get_pr_details(self, owner, repo, number):
        self._maybe_fail("get_pr_details")
        pr = self.get_pull_request(owner, repo, number)
        return PullRequestDetails(
            head_ref=pr["head"]["ref"],
            base_ref=pr["base"]["ref"],
            body=pr["body"] or "",
            commit_messages=self.list_commit_messages(owner, repo, number),
        )

    def get_label(self, owner, repo, name):
        self._maybe_fail("get_label")
        if name not in self.repo_labels.get((owner, repo), set()):
            raise GitHubError(404, "Not Found")
        return {"name": name}

    def create_label(self, owner, repo, name, color, description):
        self._maybe_fail("create_label")
        self.repo_labels.setdefault((owner, repo), set()).add(name)
        self.created_labels.append((name, color, description))
        return {"name": name}

    def list_issue_labels(self, owner, repo, number):
        self._maybe_fail("list_issue_labels")
        return list(self.issue_labels.get((owner, repo, number), []))

    def add_labels(self, owner, repo, number, labels):
        self._maybe_fail("add_labels")
        self.issue_labels.setdefault((owner, repo, number), []).extend(labels)

    def remove_label(self, owner, repo, number, name):
        self._maybe_fail("remove_label")
        self.issue_labels[(owner, repo, number)].remove(name)

    def search_issues(self, query, per_page=100):
        self._maybe_fail("search_issues")
        self.searches.append(query)
        return self.search_results.get(query, {"total_count": 0, "items": []})

    def list_releases(self, owner, repo, per_page=1):
        return list(self.releases.get((owner, repo), []))[:per_page]

    def create_release(self, owner, repo, **fields):
        release = {"id": len(self.created_releases) + 1, **fields}
        self.created_releases.append(release)
        return release

    def update_release(self, owner, repo, release_id, **fields):
        self.updated_releases.append({"id": release_id, **fields})
        return {"id": release_id, **fields}

    def generate_release_notes(self, owner, repo, tag_name):
        return {"name": tag_name, "body": f"Notes for {tag_name}"}

    def get_file_content(self, owner, repo, path, ref):
        try:
            return self.contents[(owner, repo, path, ref)]
        except KeyError:
            raise GitHubError(404, "Not Found") from None


class FakeShortcut:
    def __init__(self, stories: list[Story] | None = None) -> None:
        self.stories = {s.id: s for s in stories or []}
        self.requested: list[int] = []

    def fetch_story(self, story_id):
        self.requested.append(story_id)
        return self.stories.get(story_id)

    def fetch_stories(self, story_ids):
        found = [self.fetch_story(i) for i in story_ids]
        return sorted((s for s in found if s is not None), key=lambda s: s.id)


class FakeSlack:
    def __init__(self) -> None:
        self.sent: list[tuple[str, list[str]]] = []

    def send_markdown_messages(self, url, messages, attachments=None, passed=None):
        self.sent.append((url, list(messages)))


@pytest.fixture
def fake_github() -> FakeGitHub:
    return FakeGitHub()


@pytest.fixture
def fake_shortcut() -> FakeShortcut:
    return FakeShortcut()


@pytest.fixture
def fake_slack() -> FakeSlack:
    return FakeSlack()


@pytest.fixture
def bot_config() -> BotConfig:
    return BotConfig(
        organization="Org",
        effect_repos={
            "renameTitle": ("backend-api",),
            "resyncReleaseNotes": ("backend-api",),
            "tagRelease": ("backend-api",),
            "tagReleaseFromGradleFile": ("app-android",),
        },
        default_bump={"backend-api": "minor"},
    )

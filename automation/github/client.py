"""Thin GitHub REST client used by the release bot.

Only the endpoints the bot needs are wrapped. Every failure surfaces as
:class:`GitHubError`; callers decide whether it is fatal.
"""

from __future__ import annotations

import base64
import json
import logging
from dataclasses import dataclass
from typing import Any, Iterator
from urllib import error, parse, request

GH_API = "https://api.github.com"
API_VERSION = "2022-11-28"
PER_PAGE = 100

logger = logging.getLogger("release-bot.github")


class GitHubError(RuntimeError):
    """Raised when a GitHub API call fails. ``status`` is None for transport errors."""

    def __init__(self, status: int | None, message: str) -> None:
        super().__init__(f"GitHub API error ({status}): {message}" if status else f"GitHub API error: {message}")
        self.status = status


@dataclass(frozen=True)
class PullRequestDetails:
    head_ref: str
    base_ref: str
    body: str
    commit_messages: list[str]


class GitHubClient:
    def __init__(self, token: str, api_url: str = GH_API, timeout: int = 15) -> None:
        self.token = token
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout

    def _request(
        self,
        method: str,
        path: str,
        payload: dict[str, Any] | None = None,
        query: dict[str, Any] | None = None,
    ) -> Any:
        url = f"{self.api_url}{path}"
        if query:
            url = f"{url}?{parse.urlencode(query)}"
        data = None
        if payload is not None:
            data = json.dumps(payload).encode("utf-8")
        req = request.Request(url, data=data, method=method)
        req.add_header("Accept", "application/vnd.github+json")
        req.add_header("X-GitHub-Api-Version", API_VERSION)
        if self.token:
            req.add_header("Authorization", f"Bearer {self.token}")
        if data is not None:
            req.add_header("Content-Type", "application/json")
        logger.debug("github %s %s", method, path)
        try:
            with request.urlopen(req, timeout=self.timeout) as resp:
                raw = resp.read().decode("utf-8")
        except error.HTTPError as exc:
            body = exc.read().decode("utf-8", errors="ignore")
            raise GitHubError(exc.code, f"{method} {path}: {body or exc.reason}") from exc
        except error.URLError as exc:
            raise GitHubError(None, f"{method} {path}: {exc.reason}") from exc
        except (OSError, UnicodeDecodeError) as exc:
            # socket timeouts and dropped connections, raised from urlopen or read
            raise GitHubError(None, f"{method} {path}: {exc}") from exc
        if not raw:
            return {}
        try:
            return json.loads(raw)
        except json.JSONDecodeError as exc:
            raise GitHubError(None, f"{method} {path}: invalid JSON response") from exc

    def _pages(self, path: str, per_page: int = PER_PAGE, query: dict[str, Any] | None = None) -> Iterator[list[Any]]:
        page = 1
        while True:
            items = self._request("GET", path, query={**(query or {}), "per_page": per_page, "page": page})
            if not isinstance(items, list):
                raise GitHubError(None, f"GET {path}: expected a list response")
            yield items
            if len(items) < per_page:
                return
            page += 1

    # pull requests

    def get_pull_request(self, owner: str, repo: str, number: int) -> dict[str, Any]:
        return self._request("GET", f"/repos/{owner}/{repo}/pulls/{number}")

    def update_pull_request(
        self,
        owner: str,
        repo: str,
        number: int,
        *,
        body: str | None = None,
        title: str | None = None,
    ) -> dict[str, Any]:
        payload: dict[str, Any] = {}
        if body is not None:
            payload["body"] = body
        if title is not None:
            payload["title"] = title
        return self._request("PATCH", f"/repos/{owner}/{repo}/pulls/{number}", payload=payload)

    def list_commit_messages(self, owner: str, repo: str, number: int) -> list[str]:
        messages: list[str] = []
        for page in self._pages(f"/repos/{owner}/{repo}/pulls/{number}/commits"):
            messages.extend(c.get("commit", {}).get("message", "") for c in page)
        return messages

    def iter_changed_files(self, owner: str, repo: str, number: int, per_page: int = PER_PAGE) -> Iterator[list[str]]:
        """Yield changed file names one page at a time so callers can stop early."""
        for page in self._pages(f"/repos/{owner}/{repo}/pulls/{number}/files", per_page=per_page):
            yield [f.get("filename", "") for f in page if f.get("filename")]

    def get_pr_details(self, owner: str, repo: str, number: int) -> PullRequestDetails:
        pr = self.get_pull_request(owner, repo, number)
        return PullRequestDetails(
            head_ref=pr.get("head", {}).get("ref", ""),
            base_ref=pr.get("base", {}).get("ref", ""),
            body=pr.get("body") or "",
            commit_messages=self.list_commit_messages(owner, repo, number),
        )

    # labels

    def get_label(self, owner: str, repo: str, name: str) -> dict[str, Any]:
        return self._request("GET", f"/repos/{owner}/{repo}/labels/{parse.quote(name, safe='')}")

    def create_label(self, owner: str, repo: str, name: str, color: str, description: str) -> dict[str, Any]:
        return self._request(
            "POST",
            f"/repos/{owner}/{repo}/labels",
            payload={"name": name, "color": color, "description": description},
        )

    def list_issue_labels(self, owner: str, repo: str, number: int) -> list[str]:
        labels = self._request("GET", f"/repos/{owner}/{repo}/issues/{number}/labels", query={"per_page": PER_PAGE})
        return [x.get("name", "") for x in labels if isinstance(x, dict)]

    def add_labels(self, owner: str, repo: str, number: int, labels: list[str]) -> None:
        self._request("POST", f"/repos/{owner}/{repo}/issues/{number}/labels", payload={"labels": labels})

    def remove_label(self, owner: str, repo: str, number: int, name: str) -> None:
        self._request("DELETE", f"/repos/{owner}/{repo}/issues/{number}/labels/{parse.quote(name, safe='')}")

    # search

    def search_issues(self, query: str, per_page: int = PER_PAGE) -> dict[str, Any]:
        return self._request("GET", "/search/issues", query={"q": query, "per_page": per_page})

    # releases and contents

    def list_releases(self, owner: str, repo: str, per_page: int = 1) -> list[dict[str, Any]]:
        return self._request("GET", f"/repos/{owner}/{repo}/releases", query={"per_page": per_page})

    def create_release(self, owner: str, repo: str, **fields: Any) -> dict[str, Any]:
        return self._request("POST", f"/repos/{owner}/{repo}/releases", payload=fields)

    def update_release(self, owner: str, repo: str, release_id: int, **fields: Any) -> dict[str, Any]:
        return self._request("PATCH", f"/repos/{owner}/{repo}/releases/{release_id}", payload=fields)

    def generate_release_notes(self, owner: str, repo: str, tag_name: str) -> dict[str, Any]:
        return self._request(
            "POST",
            f"/repos/{owner}/{repo}/releases/generate-notes",
            payload={"tag_name": tag_name},
        )

    def get_file_content(self, owner: str, repo: str, path: str, ref: str) -> str | None:
        """Return the decoded text of a file at ``ref``; None when the path is not a file."""
        data = self._request("GET", f"/repos/{owner}/{repo}/contents/{parse.quote(path)}", query={"ref": ref})
        if not isinstance(data, dict) or data.get("type") != "file":
            return None
        return base64.b64decode(data.get("content", "")).decode("utf-8")

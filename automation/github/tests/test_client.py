from __future__ import annotations

import base64
import io
import json
from http.client import RemoteDisconnected
from urllib import error

import pytest

from automation.github.client import GitHubClient, GitHubError


class _Response:
    def __init__(self, payload) -> None:
        self._raw = b"" if payload is None else json.dumps(payload).encode("utf-8")

    def read(self) -> bytes:
        return self._raw

    def __enter__(self):
        return self

    def __exit__(self, *exc) -> None:
        return None


@pytest.fixture
def recorded(monkeypatch):
    """Route urlopen through a queue of canned responses and record each request."""
    state = {"requests": [], "responses": []}

    def fake_urlopen(req, timeout=None):
        state["requests"].append(req)
        response = state["responses"].pop(0)
        if isinstance(response, Exception):
            raise response
        return _Response(response)

    monkeypatch.setattr("urllib.request.urlopen", fake_urlopen)
    return state


def test_request_sends_auth_and_api_headers(recorded) -> None:
    recorded["responses"].append({"number": 5})
    client = GitHubClient("tok", api_url="https://gh.example/")

    assert client.get_pull_request("Org", "backend-api", 5) == {"number": 5}

    req = recorded["requests"][0]
    assert req.full_url == "https://gh.example/repos/Org/backend-api/pulls/5"
    assert req.get_method() == "GET"
    assert req.get_header("Authorization") == "Bearer tok"
    assert req.get_header("Accept") == "application/vnd.github+json"


def test_update_pull_request_only_sends_given_fields(recorded) -> None:
    recorded["responses"].append({})
    GitHubClient("tok").update_pull_request("Org", "backend-api", 5, title="Production Release")

    req = recorded["requests"][0]
    assert req.get_method() == "PATCH"
    assert json.loads(req.data) == {"title": "Production Release"}


def test_http_error_becomes_github_error_with_status(recorded) -> None:
    recorded["responses"].append(
        error.HTTPError("https://api.github.com/x", 404, "Not Found", {}, io.BytesIO(b'{"message":"Not Found"}'))
    )

    with pytest.raises(GitHubError) as exc_info:
        GitHubClient("tok").get_label("Org", "backend-api", "untested")

    assert exc_info.value.status == 404
    assert "Not Found" in str(exc_info.value)


def test_transport_error_has_no_status(recorded) -> None:
    recorded["responses"].append(error.URLError("connection refused"))

    with pytest.raises(GitHubError) as exc_info:
        GitHubClient("tok").list_releases("Org", "backend-api")

    assert exc_info.value.status is None


def test_empty_response_is_empty_dict(recorded) -> None:
    recorded["responses"].append(None)
    assert GitHubClient("tok").remove_label("Org", "backend-api", 5, "untested") is None
    assert recorded["requests"][0].full_url.endswith("/issues/5/labels/untested")


def test_changed_files_are_yielded_page_by_page(recorded) -> None:
    recorded["responses"].extend(
        [
            [{"filename": "a.py"}, {"filename": "b.py"}],
            [{"filename": "c.py"}],
        ]
    )

    pages = list(GitHubClient("tok").iter_changed_files("Org", "backend-api", 5, per_page=2))

    assert pages == [["a.py", "b.py"], ["c.py"]]
    assert "page=2" in recorded["requests"][1].full_url


def test_get_pr_details_collects_commit_messages(recorded) -> None:
    recorded["responses"].extend(
        [
            {"head": {"ref": "sc-3/login"}, "base": {"ref": "main"}, "body": None},
            [{"commit": {"message": "Fix [sc-4]"}}, {"commit": {"message": "wip"}}],
        ]
    )

    details = GitHubClient("tok").get_pr_details("Org", "backend-api", 5)

    assert details.head_ref == "sc-3/login"
    assert details.base_ref == "main"
    assert details.body == ""
    assert details.commit_messages == ["Fix [sc-4]", "wip"]


def test_get_file_content_decodes_base64(recorded) -> None:
    encoded = base64.b64encode(b'versionName = "1.4.0"\n').decode("ascii")
    recorded["responses"].extend([{"type": "file", "content": encoded}, {"type": "dir"}])
    client = GitHubClient("tok")

    assert client.get_file_content("Org", "app-android", "app/build.gradle.kts", "main") == 'versionName = "1.4.0"\n'
    assert client.get_file_content("Org", "app-android", "app", "main") is None
    assert "ref=main" in recorded["requests"][0].full_url


class _TimedOutResponse(_Response):
    def read(self) -> bytes:
        raise TimeoutError("The read operation timed out")


def test_read_timeout_becomes_transport_error(monkeypatch) -> None:
    monkeypatch.setattr("urllib.request.urlopen", lambda req, timeout=None: _TimedOutResponse(None))

    with pytest.raises(GitHubError) as exc_info:
        GitHubClient("tok").get_pull_request("Org", "backend-api", 5)

    assert exc_info.value.status is None
    assert "timed out" in str(exc_info.value)


def test_dropped_connection_becomes_transport_error(recorded) -> None:
    recorded["responses"].append(RemoteDisconnected("Remote end closed connection without response"))

    with pytest.raises(GitHubError) as exc_info:
        GitHubClient("tok").search_issues("org:Org sc-3")

    assert exc_info.value.status is None

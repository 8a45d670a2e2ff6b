from __future__ import annotations

import pytest

from automation.release.versioning import (
    bump_key,
    bump_version,
    gradle_version_name,
    next_release_tag,
    split_version_tag,
)


def test_split_version_tag_keeps_prefix_and_suffix() -> None:
    tag = split_version_tag("v1.2.3beta")
    assert (tag.prefix, tag.version, tag.suffix) == ("v", "1.2.3", "beta")
    assert str(tag) == "v1.2.3beta"


def test_split_version_tag_without_match_starts_at_zero() -> None:
    assert split_version_tag("").version == "0"
    assert split_version_tag("not a version!").version == "0"


@pytest.mark.parametrize(
    ("version", "key", "expected"),
    [
        ("1.2.3", "major", "2"),
        ("1.2.3", "minor", "1.3"),
        ("1.2.3", "patch", "1.2.4"),
        ("4", "minor", "4.1"),
        ("4", "patch", "4.0.1"),
        ("0", "minor", "0.1"),
    ],
)
def test_bump_version_drops_lower_components(version: str, key: str, expected: str) -> None:
    assert bump_version(version, key) == expected


def test_bump_key_prefers_highest_label() -> None:
    assert bump_key(["release-patch", "release-major"]) == "major"
    assert bump_key(["release-patch", "bug"]) == "patch"
    assert bump_key(["bug"], "patch") == "patch"
    assert bump_key([]) == "minor"


def test_next_release_tag() -> None:
    assert next_release_tag("v1.2", ["release-patch"]) == "v1.2.1"
    assert next_release_tag("v1.2", [], "minor") == "v1.3"
    assert next_release_tag("1.9.9", ["release-major"]) == "2"
    assert next_release_tag(None, [], "minor") == "0.1"


def test_gradle_version_name() -> None:
    content = 'android {\n    defaultConfig {\n        versionName = "2.14.0"\n    }\n}\n'
    assert gradle_version_name(content) == "2.14.0"
    assert gradle_version_name('versionName = ""') is None
    assert gradle_version_name("versionCode = 4") is None

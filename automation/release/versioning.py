"""Release tag arithmetic: label-driven version bumps and gradle version lookup."""

from __future__ import annotations

import re
from dataclasses import dataclass, replace
from typing import Iterable

VERSION_RE = re.compile(r"^(?P<prefix>[a-zA-Z]+)?(?P<version>\d+(?:\.\d+)*)(?P<suffix>[a-zA-Z]+)?$")
GRADLE_VERSION_RE = re.compile(r'versionName\s=\s"(.*)"')

VERSION_LABELS = {
    "major": "release-major",
    "minor": "release-minor",
    "patch": "release-patch",
}
FALLBACK_BUMP = "minor"


@dataclass(frozen=True)
class VersionTag:
    prefix: str | None
    version: str
    suffix: str | None

    def __str__(self) -> str:
        return "".join(p for p in (self.prefix, self.version, self.suffix) if p)


def split_version_tag(tag: str) -> VersionTag:
    match = VERSION_RE.match(tag or "")
    if not match:
        return VersionTag(prefix=None, version="0", suffix=None)
    return VersionTag(prefix=match.group("prefix"), version=match.group("version"), suffix=match.group("suffix"))


def version_numbers(version: str) -> tuple[int, int, int]:
    parts = [int(p) if p.isdigit() else 0 for p in version.split(".")] + [0, 0, 0]
    return parts[0], parts[1], parts[2]


def bump_key(labels: Iterable[str], default_bump: str | None = None) -> str:
    names = {name for name in labels if name.startswith("release-")}
    for key in ("major", "minor", "patch"):
        if VERSION_LABELS[key] in names:
            return key
    return default_bump or FALLBACK_BUMP


def bump_version(version: str, key: str) -> str:
    """Bump one component; lower components are dropped rather than reset."""
    major, minor, patch = version_numbers(version)
    if key == "major":
        return str(major + 1)
    if key == "minor":
        return f"{major}.{minor + 1}"
    return f"{major}.{minor}.{patch + 1}"


def next_release_tag(latest_tag: str | None, labels: Iterable[str], default_bump: str | None = None) -> str:
    current = split_version_tag(latest_tag or "")
    bumped = bump_version(current.version, bump_key(labels, default_bump))
    return str(replace(current, version=bumped))


def gradle_version_name(content: str) -> str | None:
    match = GRADLE_VERSION_RE.search(content or "")
    return match.group(1) if match and match.group(1) else None

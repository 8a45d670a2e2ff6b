"""Story id extraction from branch names and commit messages."""

from __future__ import annotations

import re
from typing import Iterable

STORY_PREFIX = "sc"

REF_RE = re.compile(rf"^{STORY_PREFIX}-(\d+)/.+$")
# merge commits: "Merge pull request #12 from Org/sc-42/some-branch"
MERGE_STORY_RE = re.compile(rf"{STORY_PREFIX}-(\d+)/")
INLINE_STORY_RE = re.compile(rf"\[{STORY_PREFIX}-(\d+)\]", re.IGNORECASE)


def story_reference(story_id: int) -> str:
    return f"{STORY_PREFIX}-{story_id}"


def ref_is_story(ref: str) -> bool:
    return bool(REF_RE.match(ref or ""))


def extract_story_id_from_ref(ref: str) -> int | None:
    match = REF_RE.match(ref or "")
    return int(match.group(1)) if match else None


def extract_story_ids_from_message(message: str) -> list[int]:
    ids: list[int] = []
    merge_match = MERGE_STORY_RE.search(message or "")
    if merge_match:
        ids.append(int(merge_match.group(1)))
    ids.extend(int(m.group(1)) for m in INLINE_STORY_RE.finditer(message or ""))
    return ids


def extract_story_ids(head_ref: str, commit_messages: Iterable[str]) -> list[int]:
    """Deduplicated story ids referenced by a branch and its commits, ascending."""
    ids: set[int] = set()
    ref_id = extract_story_id_from_ref(head_ref)
    if ref_id is not None:
        ids.add(ref_id)
    for message in commit_messages:
        ids.update(extract_story_ids_from_message(message))
    return sorted(ids)

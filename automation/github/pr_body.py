"""Generated regions of a pull request description.

The bot owns up to three regions in a PR body: the shipped-stories notice,
the changelog block and the tracked-files notice. Everything else belongs to
the author and is carried over untouched. A body is parsed into ordered
segments, the generated ones are dropped and fresh ones are prepended, so
reconciling an already reconciled body changes nothing.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum

CHANGELOG_START = "<!-- changelog-start -->"
CHANGELOG_END = "<!-- changelog-end -->"
CHANGELOG_RE = re.compile(f"{re.escape(CHANGELOG_START)}[\\s\\S]*?{re.escape(CHANGELOG_END)}")

SHIPPED_NOTICE_PREFIX = "**Stories "
SHIPPED_NOTICE_SUFFIX = " have already been shipped. Test these stories before merging.**"
SHIPPED_NOTICE_RE = re.compile(r"\*\*Stories .+ have already been shipped\. Test these stories before merging\.\*\*")


class SegmentKind(str, Enum):
    USER = "user"
    SHIPPED_NOTICE = "shipped_notice"
    CHANGELOG = "changelog"
    MAPPING_NOTICE = "mapping_notice"


@dataclass(frozen=True)
class Segment:
    kind: SegmentKind
    text: str


@dataclass(frozen=True)
class GeneratedSections:
    shipped_notice: str | None = None
    changelog: str | None = None
    mapping_notice: str | None = None


def _line_segments(text: str, mapping_notice: str) -> list[Segment]:
    segments: list[Segment] = []
    user: list[str] = []
    for line in text.splitlines(keepends=True):
        content = line.rstrip("\r\n")
        if mapping_notice and content == mapping_notice:
            kind = SegmentKind.MAPPING_NOTICE
        elif SHIPPED_NOTICE_RE.fullmatch(content):
            kind = SegmentKind.SHIPPED_NOTICE
        else:
            user.append(line)
            continue
        if user:
            segments.append(Segment(SegmentKind.USER, "".join(user)))
            user = []
        segments.append(Segment(kind, content))
    if user:
        segments.append(Segment(SegmentKind.USER, "".join(user)))
    return segments


def parse_body(body: str | None, mapping_notice: str) -> list[Segment]:
    body = body or ""
    segments: list[Segment] = []
    pos = 0
    for match in CHANGELOG_RE.finditer(body):
        segments.extend(_line_segments(body[pos : match.start()], mapping_notice))
        segments.append(Segment(SegmentKind.CHANGELOG, match.group(0)))
        pos = match.end()
    segments.extend(_line_segments(body[pos:], mapping_notice))
    return segments


def strip_generated_content(body: str | None, mapping_notice: str) -> str:
    segments = parse_body(body, mapping_notice)
    return "".join(s.text for s in segments if s.kind is SegmentKind.USER).strip()


def reconcile_body(current: str | None, sections: GeneratedSections, mapping_notice: str) -> str:
    parts = [
        sections.shipped_notice,
        sections.changelog,
        sections.mapping_notice,
        strip_generated_content(current, mapping_notice),
    ]
    return "\n\n".join(p for p in parts if p)


def needs_update(current: str | None, new_body: str) -> bool:
    return new_body != (current or "").strip()

#!/usr/bin/env python3
"""Validate a release PR body markdown file.

Fails if literal escaped newline sequences (\\n) are present in content,
because these render incorrectly on GitHub when passed as plain text, or if
the bot-generated regions are malformed: more than one changelog block,
unbalanced changelog markers, or generated regions that are out of order or
interleaved with author text.
"""

from __future__ import annotations

import argparse
from pathlib import Path

from automation.config import DEFAULT_MAPPING_NOTICE
from automation.github.pr_body import CHANGELOG_END, CHANGELOG_START, SegmentKind, parse_body

FORBIDDEN = "\\n"

GENERATED_ORDER = [SegmentKind.SHIPPED_NOTICE, SegmentKind.CHANGELOG, SegmentKind.MAPPING_NOTICE]


def validate_content(content: str, mapping_notice: str = DEFAULT_MAPPING_NOTICE) -> tuple[bool, str]:
    if FORBIDDEN in content:
        return (
            False,
            "PR body contains literal escaped newline sequence '\\n'. "
            "Use real newlines and pass content via --body-file.",
        )

    starts = content.count(CHANGELOG_START)
    ends = content.count(CHANGELOG_END)
    if starts != ends:
        return False, f"unbalanced changelog markers: {starts} start vs {ends} end"
    if starts > 1:
        return False, f"PR body contains {starts} changelog blocks; expected at most one"

    generated: list[SegmentKind] = []
    seen_author_text = False
    for segment in parse_body(content, mapping_notice):
        if segment.kind is SegmentKind.USER:
            if segment.text.strip():
                seen_author_text = True
            continue
        if seen_author_text:
            return False, f"generated {segment.kind.value} appears after author text"
        generated.append(segment.kind)

    if len(generated) != len(set(generated)):
        return False, "generated regions are duplicated"
    if generated != [kind for kind in GENERATED_ORDER if kind in generated]:
        return False, "generated regions are out of order"
    return True, "ok"


def main() -> int:
    parser = argparse.ArgumentParser(description="Validate PR body markdown file")
    parser.add_argument("--file", required=True, help="Path to PR body markdown file")
    parser.add_argument("--mapping-notice", default=DEFAULT_MAPPING_NOTICE, help="Tracked-files notice line")
    args = parser.parse_args()

    path = Path(args.file)
    content = path.read_text(encoding="utf-8")
    ok, msg = validate_content(content, args.mapping_notice)
    if not ok:
        print(f"ERROR: {msg}\nFile: {path}")
        return 1
    print(f"PR body validation passed: {path}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterable, Mapping

from automation.github.pr_body import (
    CHANGELOG_END,
    CHANGELOG_START,
    SHIPPED_NOTICE_PREFIX,
    SHIPPED_NOTICE_SUFFIX,
)
from automation.release.branches import BranchTier
from automation.shortcut.client import Story
from automation.shortcut.stories import story_reference

LINK_STYLES = ("autolink", "markdown", "html")


class StoryStatus(str, Enum):
    READY = "ready"
    NOT_READY = "not_ready"
    SHIPPED = "shipped"


STATUS_INDICATORS = {
    StoryStatus.READY: "✅",
    StoryStatus.NOT_READY: "🚫",
    StoryStatus.SHIPPED: "🚢",
}


@dataclass(frozen=True)
class ChangelogItem:
    story: Story
    shipped: bool
    status: StoryStatus | None
    reference: str
    story_url: str

    @property
    def indicator(self) -> str | None:
        return STATUS_INDICATORS[self.status] if self.status else None

    @property
    def blocks_release(self) -> bool:
        return self.status is StoryStatus.NOT_READY


def story_status(story: Story, shipped: bool, ready_state_id: int) -> StoryStatus:
    if shipped:
        return StoryStatus.SHIPPED
    if story.workflow_state_id == ready_state_id:
        return StoryStatus.READY
    return StoryStatus.NOT_READY


def build_changelog_items(
    stories: Iterable[Story],
    shipped: Mapping[int, bool],
    tier: BranchTier,
    ready_state_id: int,
    story_url: Callable[[int], str],
) -> list[ChangelogItem]:
    """One item per story; statuses are only assigned on production-tier targets."""
    items = []
    for story in sorted(stories, key=lambda s: s.id):
        is_shipped = bool(shipped.get(story.id, False))
        status = story_status(story, is_shipped, ready_state_id) if tier is BranchTier.PRODUCTION else None
        items.append(
            ChangelogItem(
                story=story,
                shipped=is_shipped,
                status=status,
                reference=story_reference(story.id),
                story_url=story_url(story.id),
            )
        )
    return items


def render_story_link(item: ChangelogItem, link_style: str = "autolink") -> str:
    if link_style == "html":
        return f'<a href="{item.story_url}" target="_blank" rel="noopener noreferrer">{item.reference}</a>'
    if link_style == "markdown":
        return f"[{item.reference}]({item.story_url})"
    return item.reference


def render_changelog_line(item: ChangelogItem, link_style: str = "autolink") -> str:
    parts = [item.indicator, f"{render_story_link(item, link_style)}:", item.story.name]
    return " ".join(p for p in parts if p)


def render_changelog_block(items: list[ChangelogItem], link_style: str = "autolink") -> str | None:
    if not items:
        return None
    lines = [render_changelog_line(item, link_style) for item in items]
    return "\n".join([CHANGELOG_START, *lines, CHANGELOG_END])


def render_shipped_notice(items: list[ChangelogItem]) -> str | None:
    shipped = [item.reference for item in items if item.shipped]
    if not shipped:
        return None
    return SHIPPED_NOTICE_PREFIX + ", ".join(shipped) + SHIPPED_NOTICE_SUFFIX

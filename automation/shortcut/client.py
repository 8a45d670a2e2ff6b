from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Iterable
from urllib import error, request

from automation.parallel import map_concurrently

SHORTCUT_API = "https://api.app.shortcut.com/api/v3"

logger = logging.getLogger("release-bot.shortcut")


@dataclass(frozen=True)
class Story:
    id: int
    name: str
    workflow_state_id: int


class ShortcutClient:
    """Read-only Shortcut story lookups. A failed lookup yields None, never an exception."""

    def __init__(self, token: str, api_url: str = SHORTCUT_API, timeout: int = 15) -> None:
        self.token = token
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout

    def fetch_story(self, story_id: int) -> Story | None:
        req = request.Request(f"{self.api_url}/stories/{story_id}", method="GET")
        req.add_header("Content-Type", "application/json")
        req.add_header("Shortcut-Token", self.token)
        try:
            with request.urlopen(req, timeout=self.timeout) as resp:
                raw = json.loads(resp.read().decode("utf-8"))
        except error.HTTPError as exc:
            logger.error("failed to fetch story %s: %s %s", story_id, exc.code, exc.reason)
            return None
        except (error.URLError, OSError, json.JSONDecodeError) as exc:
            logger.error("error fetching story %s: %s", story_id, exc)
            return None

        try:
            return Story(
                id=int(raw["id"]),
                name=str(raw.get("name", "")),
                workflow_state_id=int(raw["workflow_state_id"]),
            )
        except (KeyError, TypeError, ValueError) as exc:
            logger.error("unexpected story payload for %s: %s", story_id, exc)
            return None

    def fetch_stories(self, story_ids: Iterable[int]) -> list[Story]:
        stories = map_concurrently(self.fetch_story, list(story_ids))
        return sorted((s for s in stories if s is not None), key=lambda s: s.id)

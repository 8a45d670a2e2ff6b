from __future__ import annotations

import json
import logging
from typing import Any
from urllib import error, request

PASSED_COLOR = "#4bff48"
FAILED_COLOR = "#ff4848"

logger = logging.getLogger("release-bot.slack")


class SlackWebhookError(RuntimeError):
    """Raised when a Slack webhook call fails."""

    def __init__(self, status_code: int | None, text: str) -> None:
        super().__init__(f"Slack webhook failed ({status_code}): {text}")
        self.status_code = status_code


def _section(text: str) -> dict[str, Any]:
    return {"type": "section", "text": {"type": "mrkdwn", "text": text}}


def build_payload(
    messages: list[str],
    attachments: list[str] | None = None,
    passed: bool | None = None,
) -> dict[str, Any]:
    payload: dict[str, Any] = {"blocks": [_section(m) for m in messages]}
    if attachments:
        color = None if passed is None else (PASSED_COLOR if passed else FAILED_COLOR)
        payload["attachments"] = [
            {**({"color": color} if color else {}), "blocks": [_section(a)]} for a in attachments
        ]
    return payload


class SlackNotifier:
    def __init__(self, timeout: int = 15) -> None:
        self.timeout = timeout

    def send_markdown_messages(
        self,
        url: str,
        messages: list[str],
        attachments: list[str] | None = None,
        passed: bool | None = None,
    ) -> None:
        if not url:
            return
        data = json.dumps(build_payload(messages, attachments, passed)).encode("utf-8")
        req = request.Request(url, data=data, method="POST")
        req.add_header("Content-Type", "application/json")
        try:
            with request.urlopen(req, timeout=self.timeout):
                pass
        except error.HTTPError as exc:
            body = exc.read().decode("utf-8", errors="ignore")
            raise SlackWebhookError(exc.code, body or str(exc.reason)) from exc
        except error.URLError as exc:
            raise SlackWebhookError(None, str(exc.reason)) from exc
        except OSError as exc:
            raise SlackWebhookError(None, str(exc)) from exc
        logger.info("posted %s slack blocks", len(messages))

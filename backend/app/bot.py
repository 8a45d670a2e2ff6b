from __future__ import annotations

from dataclasses import dataclass, field

from automation.config import BotConfig, Settings
from automation.github.client import GitHubClient
from automation.github.labels import QALabelManager
from automation.release.branches import is_production_branch, is_staging_branch
from automation.release.reconcile import PullRequestReconciler
from automation.shortcut.client import ShortcutClient
from automation.slack.notifier import SlackNotifier


@dataclass
class ReleaseBot:
    """Everything an effect needs, wired once per process."""

    github: object
    shortcut: object
    slack: object
    config: BotConfig
    slack_webhook_production: str = ""
    slack_webhook_staging: str = ""
    reconciler: PullRequestReconciler = field(init=False)

    def __post_init__(self) -> None:
        self.reconciler = PullRequestReconciler(
            self.github,
            self.shortcut,
            self.config,
            QALabelManager(self.github, self.config.untested_label),
        )

    def slack_webhook_for(self, branch: str) -> str:
        if is_production_branch(branch):
            return self.slack_webhook_production
        if is_staging_branch(branch):
            return self.slack_webhook_staging
        return ""


def build_bot(settings: Settings) -> ReleaseBot:
    return ReleaseBot(
        github=GitHubClient(settings.github_token, settings.github_api_url),
        shortcut=ShortcutClient(settings.shortcut_token, settings.shortcut_api_url),
        slack=SlackNotifier(),
        config=settings.bot,
        slack_webhook_production=settings.slack_webhook_production,
        slack_webhook_staging=settings.slack_webhook_staging,
    )

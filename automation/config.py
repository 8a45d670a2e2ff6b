#!/usr/bin/env python3
"""release-bot settings: secrets from the environment, repository policy from YAML.

The YAML file is validated against ``automation/schemas/release-bot.schema.json``
before use; missing keys fall back to the defaults below. Without
``RELEASE_BOT_CONFIG`` the repository's ``config/release-bot.yaml`` is loaded.
"""

from __future__ import annotations

import argparse
import json
import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

import yaml
from jsonschema import Draft202012Validator

from automation.github.labels import LabelDefinition

SCHEMA_DIR = Path(__file__).resolve().parent / "schemas"
SCHEMA_PATH = SCHEMA_DIR / "release-bot.schema.json"
DEFAULT_CONFIG_PATH = Path(__file__).resolve().parents[1] / "config" / "release-bot.yaml"

DEFAULT_GITHUB_API = "https://api.github.com"
DEFAULT_SHORTCUT_API = "https://api.app.shortcut.com/api/v3"

QA_WORKFLOW_STATE_ID = 500086340
READY_TO_SHIP_WORKFLOW_STATE_ID = 500086341

DEFAULT_MAPPING_PATTERN = r"^src/config/elasticsearch/mappings/\w+.json$"
DEFAULT_MAPPING_NOTICE = "**Notice:** Elastic mappings has change. Ensure production Elastic is updated!"


class ConfigError(ValueError):
    """Raised when the YAML policy file is missing or fails schema validation."""


@dataclass(frozen=True)
class BotConfig:
    organization: str | None = None
    shortcut_workspace: str = "tattoodo"
    qa_workflow_state_id: int = QA_WORKFLOW_STATE_ID
    ready_to_ship_workflow_state_id: int = READY_TO_SHIP_WORKFLOW_STATE_ID
    untested_label: LabelDefinition = field(default_factory=LabelDefinition)
    tracked_files_pattern: str = DEFAULT_MAPPING_PATTERN
    tracked_files_notice: str = DEFAULT_MAPPING_NOTICE
    changelog_link_style: str = "autolink"
    # effect name -> repositories it is enabled for; absent means every repository
    effect_repos: Mapping[str, tuple[str, ...] | None] = field(default_factory=dict)
    default_bump: Mapping[str, str] = field(default_factory=dict)
    fallback_bump: str = "minor"
    gradle_file: str = "app/build.gradle.kts"

    def effect_enabled(self, effect_name: str, repo: str) -> bool:
        repos = self.effect_repos.get(effect_name)
        return repos is None or repo in repos

    def story_web_url(self, story_id: int) -> str:
        return f"https://app.shortcut.com/{self.shortcut_workspace}/story/{story_id}"


@dataclass(frozen=True)
class Settings:
    github_token: str = ""
    github_api_url: str = DEFAULT_GITHUB_API
    shortcut_token: str = ""
    shortcut_api_url: str = DEFAULT_SHORTCUT_API
    slack_webhook_production: str = ""
    slack_webhook_staging: str = ""
    github_webhook_secret: str = ""
    shortcut_webhook_secret: str = ""
    log_file: str = ""
    bot: BotConfig = field(default_factory=BotConfig)


def validate_config_data(data: Any) -> list[str]:
    """Return human readable schema errors for a parsed policy document."""
    schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
    validator = Draft202012Validator(schema)
    errors = sorted(validator.iter_errors(data), key=lambda e: list(e.absolute_path))
    messages = []
    for err in errors:
        path = "/".join(str(p) for p in err.absolute_path) or "<root>"
        messages.append(f"schema error at {path}: {err.message}")
    return messages


def parse_bot_config(data: Mapping[str, Any] | None) -> BotConfig:
    data = data or {}
    errors = validate_config_data(dict(data))
    if errors:
        raise ConfigError(errors[0])

    shortcut = data.get("shortcut") or {}
    states = shortcut.get("workflow_states") or {}
    label = data.get("untested_label") or {}
    tracked = data.get("tracked_files") or {}
    releases = data.get("releases") or {}
    defaults = BotConfig()

    effect_repos: dict[str, tuple[str, ...] | None] = {}
    for name, effect in (data.get("effects") or {}).items():
        repos = (effect or {}).get("repos")
        effect_repos[name] = tuple(repos) if repos is not None else None

    return BotConfig(
        organization=data.get("organization"),
        shortcut_workspace=shortcut.get("workspace", defaults.shortcut_workspace),
        qa_workflow_state_id=int(states.get("qa", defaults.qa_workflow_state_id)),
        ready_to_ship_workflow_state_id=int(
            states.get("ready_to_ship", defaults.ready_to_ship_workflow_state_id)
        ),
        untested_label=LabelDefinition(
            name=label.get("name", defaults.untested_label.name),
            color=label.get("color", defaults.untested_label.color),
            description=label.get("description", defaults.untested_label.description),
        ),
        tracked_files_pattern=tracked.get("pattern", defaults.tracked_files_pattern),
        tracked_files_notice=tracked.get("notice", defaults.tracked_files_notice),
        changelog_link_style=(data.get("changelog") or {}).get("link_style", defaults.changelog_link_style),
        effect_repos=effect_repos,
        default_bump=dict(releases.get("default_bump") or {}),
        fallback_bump=releases.get("fallback_bump", defaults.fallback_bump),
        gradle_file=releases.get("gradle_file", defaults.gradle_file),
    )


def load_bot_config(path: Path | str | None) -> BotConfig:
    if path is None:
        return BotConfig()
    config_path = Path(path)
    if not config_path.exists():
        raise ConfigError(f"config file missing: {config_path}")
    with config_path.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f)
    if data is not None and not isinstance(data, dict):
        raise ConfigError(f"config file must contain a mapping: {config_path}")
    return parse_bot_config(data)


def load_settings(environ: Mapping[str, str] | None = None) -> Settings:
    env = os.environ if environ is None else environ
    config_path = env.get("RELEASE_BOT_CONFIG") or DEFAULT_CONFIG_PATH
    return Settings(
        github_token=env.get("GITHUB_API_TOKEN") or env.get("GITHUB_TOKEN", ""),
        github_api_url=env.get("GITHUB_API_URL", DEFAULT_GITHUB_API),
        shortcut_token=env.get("CLUBHOUSE_API_TOKEN") or env.get("SHORTCUT_API_TOKEN", ""),
        shortcut_api_url=env.get("SHORTCUT_API_URL", DEFAULT_SHORTCUT_API),
        slack_webhook_production=env.get("RELEASE_SLACK_WEBHOOK_URL_PRODUCTION", ""),
        slack_webhook_staging=env.get("RELEASE_SLACK_WEBHOOK_URL_STAGING", ""),
        github_webhook_secret=env.get("GITHUB_WEBHOOK_SECRET", ""),
        shortcut_webhook_secret=env.get("SHORTCUT_WEBHOOK_SECRET", ""),
        log_file=env.get("RELEASE_BOT_LOG_FILE", ""),
        bot=load_bot_config(config_path),
    )


def fail(message: str) -> None:
    print(f"❌ release-bot config validation failed: {message}")
    sys.exit(1)


def main() -> int:
    parser = argparse.ArgumentParser(description="Validate a release-bot YAML config file")
    parser.add_argument("--file", required=True, help="Path to the YAML config file")
    args = parser.parse_args()

    path = Path(args.file)
    if not path.exists():
        fail(f"missing config file: {path}")

    with path.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f)

    errors = validate_config_data(data if data is not None else {})
    if errors:
        fail(errors[0])

    config = parse_bot_config(data)
    print(f"✅ {path} passed schema validation")
    print(f"   organization: {config.organization or '<unset>'}")
    print(f"   effects with repo allow-lists: {len(config.effect_repos)}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

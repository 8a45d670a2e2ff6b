from __future__ import annotations

from enum import Enum

PRODUCTION_BRANCHES = ("production", "main", "master")
STAGING_BRANCHES = ("release", "staging")
DEVELOPMENT_BRANCHES = ("develop", "development")


class BranchTier(str, Enum):
    PRODUCTION = "production"
    STAGING = "staging"
    OTHER = "other"


def is_production_branch(name: str) -> bool:
    return name in PRODUCTION_BRANCHES


def is_staging_branch(name: str) -> bool:
    return name in STAGING_BRANCHES


def is_development_branch(name: str) -> bool:
    return name in DEVELOPMENT_BRANCHES


def branch_tier(name: str) -> BranchTier:
    if is_production_branch(name):
        return BranchTier.PRODUCTION
    if is_staging_branch(name):
        return BranchTier.STAGING
    return BranchTier.OTHER


def is_regular_release(base: str, head: str) -> bool:
    """staging -> production, or development -> staging."""
    if is_production_branch(base) and is_staging_branch(head):
        return True
    return is_staging_branch(base) and is_development_branch(head)


def release_title(base: str) -> str | None:
    if is_production_branch(base):
        return "Production Release"
    if is_staging_branch(base):
        return "Staging Release"
    return None


def branch_from_ref(ref: str) -> str:
    prefix = "refs/heads/"
    return ref[len(prefix):] if ref.startswith(prefix) else ref

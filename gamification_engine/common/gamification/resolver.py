"""
Badge and Achievement Resolver

Pure functions that decide which catalog entries apply to a level. Nothing
here performs I/O; the award transaction persists whatever these return.
"""

from typing import AbstractSet, FrozenSet, List, Optional, Tuple

from gamification_engine.common.gamification.catalog import (
    AchievementDefinition,
    BadgeDefinition,
    GamificationCatalog,
    DEFAULT_CATALOG,
)


def resolve_achievement_for_level(
    level: int,
    catalog: GamificationCatalog = DEFAULT_CATALOG
) -> Optional[AchievementDefinition]:
    """
    Find the achievement tier containing ``level``.

    The tiers cover every level from 1 upwards, so this only returns None
    for levels below 1.
    """
    for tier in catalog.achievements:
        if tier.contains(level):
            return tier
    return None


def achievements_reached(
    level: int,
    catalog: GamificationCatalog = DEFAULT_CATALOG
) -> List[str]:
    """Ids of every tier a user at ``level`` has entered, lowest first."""
    return [tier.achievement_id for tier in catalog.achievements if tier.min_level <= level]


def is_milestone_level(level: int, catalog: GamificationCatalog = DEFAULT_CATALOG) -> bool:
    """True when reaching ``level`` triggers a badge."""
    return any(badge.trigger_level == level for badge in catalog.badges)


def get_badge_info(badge_id: str, catalog: GamificationCatalog = DEFAULT_CATALOG) -> Optional[BadgeDefinition]:
    return catalog.get_badge(badge_id)


def check_and_award_level_badges(
    current_badges: AbstractSet[str],
    new_level: int,
    catalog: GamificationCatalog = DEFAULT_CATALOG
) -> Tuple[FrozenSet[str], List[str]]:
    """
    Add every milestone badge earned by ``new_level`` that is not yet held.

    All qualifying badges are granted in one pass, so a jump over several
    milestones awards each of them. The input set is left untouched.

    Args:
        current_badges: Badge ids the user already holds
        new_level: Level the user has reached
        catalog: Badge table to award from

    Returns:
        Tuple of (updated badge set, newly awarded ids in ascending trigger level)
    """
    newly_awarded = [
        badge.badge_id
        for badge in catalog.badges
        if badge.trigger_level <= new_level and badge.badge_id not in current_badges
    ]
    return frozenset(current_badges).union(newly_awarded), newly_awarded

"""
Badge and Achievement Catalog

This module holds the static tables the engine awards from:

1. Level milestone badges, ordered by trigger level
2. Achievement tiers, contiguous level ranges covering every level from 1 up

The tables are immutable values. ``GamificationCatalog`` validates them once
and is injected into the service, so changing the tables never touches the
award logic.
"""

from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

from gamification_engine.common.exceptions import CatalogError
from gamification_engine.common.serialization import SerializableMixin


@dataclass(frozen=True)
class BadgeDefinition(SerializableMixin):
    """A badge granted once a user reaches ``trigger_level``."""

    __serializable_fields__ = ["trigger_level", "badge_id", "name", "description"]

    trigger_level: int
    badge_id: str
    name: str = ""
    description: str = ""


@dataclass(frozen=True)
class AchievementDefinition(SerializableMixin):
    """
    A tier label covering ``min_level`` to ``max_level`` inclusive.

    ``max_level`` of None means the range is unbounded.
    """

    __serializable_fields__ = ["min_level", "max_level", "achievement_id", "name", "description"]

    min_level: int
    max_level: Optional[int]
    achievement_id: str
    name: str = ""
    description: str = ""

    def contains(self, level: int) -> bool:
        if level < self.min_level:
            return False
        return self.max_level is None or level <= self.max_level


LEVEL_BADGES: Tuple[BadgeDefinition, ...] = (
    BadgeDefinition(5, "level-5", "Aprendiz", "Alcanzaste el nivel 5"),
    BadgeDefinition(10, "level-10", "Estudiante", "Alcanzaste el nivel 10"),
    BadgeDefinition(25, "level-25", "Estudiante Avanzado", "Alcanzaste el nivel 25"),
    BadgeDefinition(50, "level-50", "Experto", "Alcanzaste el nivel 50"),
    BadgeDefinition(75, "level-75", "Maestro", "Alcanzaste el nivel 75"),
    BadgeDefinition(100, "level-100", "Gran Maestro", "Alcanzaste el nivel 100"),
    BadgeDefinition(150, "level-150", "Leyenda", "Alcanzaste el nivel 150"),
    BadgeDefinition(200, "level-200", "Ídolo", "Alcanzaste el nivel 200"),
    BadgeDefinition(250, "level-250", "Mito", "Alcanzaste el nivel 250"),
    BadgeDefinition(500, "level-500", "Dios del Aprendizaje", "Alcanzaste el nivel 500"),
)

LEVEL_ACHIEVEMENTS: Tuple[AchievementDefinition, ...] = (
    AchievementDefinition(1, 10, "novice", "Novato", "Completaste los primeros 10 niveles"),
    AchievementDefinition(11, 25, "apprentice", "Aprendiz", "Completaste los niveles 11-25"),
    AchievementDefinition(26, 50, "scholar", "Erudito", "Completaste los niveles 26-50"),
    AchievementDefinition(51, 100, "expert", "Experto", "Completaste los niveles 51-100"),
    AchievementDefinition(101, 200, "master", "Maestro", "Completaste los niveles 101-200"),
    AchievementDefinition(201, 500, "grandmaster", "Gran Maestro", "Completaste los niveles 201-500"),
    AchievementDefinition(501, None, "legend", "Leyenda", "Superaste el nivel 500"),
)


@dataclass(frozen=True)
class GamificationCatalog:
    """
    Validated badge and achievement tables.

    Raises:
        CatalogError: if badge trigger levels are not strictly increasing,
            ids repeat, or achievement ranges do not partition [1, inf)
    """

    badges: Tuple[BadgeDefinition, ...] = LEVEL_BADGES
    achievements: Tuple[AchievementDefinition, ...] = LEVEL_ACHIEVEMENTS
    _badges_by_id: Dict[str, BadgeDefinition] = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        object.__setattr__(self, "badges", tuple(self.badges))
        object.__setattr__(self, "achievements", tuple(self.achievements))
        self._validate_badges()
        self._validate_achievements()
        object.__setattr__(self, "_badges_by_id", {b.badge_id: b for b in self.badges})

    def _validate_badges(self) -> None:
        seen = set()
        previous_level = None
        for badge in self.badges:
            if badge.badge_id in seen:
                raise CatalogError(f"Duplicate badge id {badge.badge_id}")
            seen.add(badge.badge_id)
            if previous_level is not None and badge.trigger_level <= previous_level:
                raise CatalogError(
                    f"Badge {badge.badge_id} trigger level {badge.trigger_level} "
                    f"does not follow {previous_level}"
                )
            previous_level = badge.trigger_level

    def _validate_achievements(self) -> None:
        if not self.achievements:
            raise CatalogError("Achievement table is empty")

        expected_min = 1
        for index, tier in enumerate(self.achievements):
            if tier.min_level != expected_min:
                raise CatalogError(
                    f"Achievement {tier.achievement_id} starts at {tier.min_level}, expected {expected_min}"
                )
            is_last = index == len(self.achievements) - 1
            if tier.max_level is None:
                if not is_last:
                    raise CatalogError(f"Only the last achievement may be unbounded ({tier.achievement_id})")
                return
            if tier.max_level < tier.min_level:
                raise CatalogError(f"Achievement {tier.achievement_id} has an empty range")
            expected_min = tier.max_level + 1

        raise CatalogError("Last achievement range must be unbounded")

    def get_badge(self, badge_id: str) -> Optional[BadgeDefinition]:
        return self._badges_by_id.get(badge_id)

    def has_badge(self, badge_id: str) -> bool:
        return badge_id in self._badges_by_id


DEFAULT_CATALOG = GamificationCatalog()

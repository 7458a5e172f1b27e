"""
Tests for the badge/achievement catalog and the resolver.
"""

import unittest

from gamification_engine.common.exceptions import CatalogError, ConfigurationError
from gamification_engine.common.gamification.catalog import (
    AchievementDefinition,
    BadgeDefinition,
    GamificationCatalog,
    DEFAULT_CATALOG,
    LEVEL_BADGES,
)
from gamification_engine.common.gamification.resolver import (
    achievements_reached,
    check_and_award_level_badges,
    get_badge_info,
    is_milestone_level,
    resolve_achievement_for_level,
)


class TestCatalogValidation(unittest.TestCase):
    """Test that malformed tables are rejected up front."""

    def test_default_catalog_is_valid(self):
        catalog = GamificationCatalog()
        self.assertEqual(len(catalog.badges), 10)
        self.assertEqual(len(catalog.achievements), 7)
        self.assertIsNone(catalog.achievements[-1].max_level)

    def test_badge_levels_must_increase(self):
        with self.assertRaises(CatalogError):
            GamificationCatalog(badges=(
                BadgeDefinition(10, "level-10"),
                BadgeDefinition(5, "level-5"),
            ))

    def test_badge_levels_must_not_repeat(self):
        with self.assertRaises(CatalogError):
            GamificationCatalog(badges=(
                BadgeDefinition(5, "a"),
                BadgeDefinition(5, "b"),
            ))

    def test_badge_ids_unique(self):
        with self.assertRaises(CatalogError):
            GamificationCatalog(badges=(
                BadgeDefinition(5, "dup"),
                BadgeDefinition(10, "dup"),
            ))

    def test_achievements_must_start_at_one(self):
        with self.assertRaises(CatalogError):
            GamificationCatalog(achievements=(AchievementDefinition(2, None, "late"),))

    def test_achievements_must_not_leave_gaps(self):
        with self.assertRaises(CatalogError):
            GamificationCatalog(achievements=(
                AchievementDefinition(1, 10, "a"),
                AchievementDefinition(12, None, "b"),
            ))

    def test_last_achievement_must_be_unbounded(self):
        with self.assertRaises(CatalogError):
            GamificationCatalog(achievements=(AchievementDefinition(1, 10, "a"),))

    def test_only_last_achievement_unbounded(self):
        with self.assertRaises(CatalogError):
            GamificationCatalog(achievements=(
                AchievementDefinition(1, None, "a"),
                AchievementDefinition(11, None, "b"),
            ))

    def test_catalog_error_is_configuration_error(self):
        with self.assertRaises(ConfigurationError):
            GamificationCatalog(achievements=())

    def test_badge_lookup(self):
        self.assertTrue(DEFAULT_CATALOG.has_badge("level-25"))
        self.assertFalse(DEFAULT_CATALOG.has_badge("level-26"))
        self.assertEqual(DEFAULT_CATALOG.get_badge("level-25").trigger_level, 25)


class TestResolver(unittest.TestCase):
    """Test badge awarding and tier lookups."""

    def test_achievement_for_level(self):
        self.assertEqual(resolve_achievement_for_level(1).achievement_id, "novice")
        self.assertEqual(resolve_achievement_for_level(10).achievement_id, "novice")
        self.assertEqual(resolve_achievement_for_level(11).achievement_id, "apprentice")
        self.assertEqual(resolve_achievement_for_level(500).achievement_id, "grandmaster")
        self.assertEqual(resolve_achievement_for_level(501).achievement_id, "legend")
        self.assertEqual(resolve_achievement_for_level(9999).achievement_id, "legend")

    def test_every_level_has_exactly_one_tier(self):
        for level in range(1, 700):
            matches = [t for t in DEFAULT_CATALOG.achievements if t.contains(level)]
            self.assertEqual(len(matches), 1, f"level {level}")

    def test_no_tier_below_one(self):
        self.assertIsNone(resolve_achievement_for_level(0))

    def test_achievements_reached(self):
        self.assertEqual(achievements_reached(1), ["novice"])
        self.assertEqual(achievements_reached(26), ["novice", "apprentice", "scholar"])

    def test_milestones(self):
        self.assertTrue(is_milestone_level(5))
        self.assertTrue(is_milestone_level(500))
        self.assertFalse(is_milestone_level(6))

    def test_badge_info(self):
        info = get_badge_info("level-10")
        self.assertEqual(info.name, "Estudiante")
        self.assertIsNone(get_badge_info("missing"))

    def test_below_first_milestone_awards_nothing(self):
        badges, newly = check_and_award_level_badges(frozenset(), 4)
        self.assertEqual(badges, frozenset())
        self.assertEqual(newly, [])

    def test_multi_level_jump_awards_every_badge(self):
        badges, newly = check_and_award_level_badges(frozenset(), 12)
        self.assertEqual(newly, ["level-5", "level-10"])
        self.assertEqual(badges, {"level-5", "level-10"})

    def test_held_badges_are_not_reawarded(self):
        current = frozenset({"level-5", "custom"})
        badges, newly = check_and_award_level_badges(current, 30)
        self.assertEqual(newly, ["level-10", "level-25"])
        self.assertEqual(badges, {"level-5", "level-10", "level-25", "custom"})

    def test_input_set_untouched(self):
        current = {"level-5"}
        check_and_award_level_badges(current, 100)
        self.assertEqual(current, {"level-5"})

    def test_newly_awarded_in_trigger_order(self):
        _, newly = check_and_award_level_badges(frozenset({"level-50"}), 1000)
        self.assertEqual(
            newly,
            [b.badge_id for b in LEVEL_BADGES if b.badge_id != "level-50"]
        )

    def test_custom_catalog(self):
        catalog = GamificationCatalog(
            badges=(BadgeDefinition(2, "first-steps"),),
            achievements=(AchievementDefinition(1, None, "everyone"),)
        )
        _, newly = check_and_award_level_badges(frozenset(), 3, catalog)
        self.assertEqual(newly, ["first-steps"])
        self.assertEqual(resolve_achievement_for_level(40, catalog).achievement_id, "everyone")


if __name__ == "__main__":
    unittest.main()

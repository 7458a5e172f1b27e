"""
Tests for the level curve.

These tests cover the threshold table in each regime, the inclusive
boundary rule, monotonicity and the safety cap.
"""

import unittest

from gamification_engine.common.gamification import level_curve
from gamification_engine.common.gamification.level_curve import (
    MAX_LEVEL,
    level_from_xp,
    level_progress,
    threshold,
    xp_for_current_level,
    xp_for_next_level,
)


class TestThreshold(unittest.TestCase):
    """Test the XP required for each level."""

    def test_first_level_needs_no_xp(self):
        self.assertEqual(threshold(1), 0)
        self.assertEqual(threshold(0), 0)
        self.assertEqual(threshold(-3), 0)

    def test_exponential_phase(self):
        self.assertEqual(threshold(2), 150)
        self.assertEqual(threshold(3), 225)
        self.assertEqual(threshold(4), 337)
        self.assertEqual(threshold(5), 506)

    def test_moderate_phase_adds_200_per_level(self):
        self.assertEqual(threshold(6), 706)
        self.assertEqual(threshold(10), 1506)
        self.assertEqual(threshold(20), 3506)

    def test_steep_phase_adds_500_per_level(self):
        self.assertEqual(threshold(21), 4006)
        self.assertEqual(threshold(30), 8506)
        self.assertEqual(threshold(100), 3506 + 80 * 500)

    def test_strictly_increasing(self):
        previous = threshold(1)
        for level in range(2, 600):
            current = threshold(level)
            self.assertGreater(current, previous, f"threshold({level}) not above threshold({level - 1})")
            previous = current


class TestLevelFromXP(unittest.TestCase):
    """Test deriving a level from cumulative XP."""

    def test_zero_xp_is_level_one(self):
        self.assertEqual(level_from_xp(0), 1)

    def test_negative_xp_is_level_one(self):
        self.assertEqual(level_from_xp(-50), 1)

    def test_threshold_is_inclusive(self):
        for level in range(1, 300):
            self.assertEqual(level_from_xp(threshold(level)), level)

    def test_one_below_threshold_is_previous_level(self):
        for level in range(2, 300):
            self.assertEqual(level_from_xp(threshold(level) - 1), level - 1)

    def test_monotonic(self):
        previous = level_from_xp(0)
        for xp in range(0, 20000, 37):
            current = level_from_xp(xp)
            self.assertGreaterEqual(current, previous)
            previous = current

    def test_examples(self):
        self.assertEqual(level_from_xp(149), 1)
        self.assertEqual(level_from_xp(150), 2)
        self.assertEqual(level_from_xp(500), 4)
        self.assertEqual(level_from_xp(510), 5)

    def test_cap_stops_walk(self):
        with self.assertLogs(level_curve.logger.name, level="WARNING") as logs:
            self.assertEqual(level_from_xp(10 ** 12), MAX_LEVEL)
        self.assertIn("Level cap", logs.output[0])

    def test_exact_cap_threshold_is_not_flagged(self):
        self.assertEqual(level_from_xp(threshold(MAX_LEVEL)), MAX_LEVEL)

    def test_custom_cap(self):
        self.assertEqual(level_from_xp(threshold(50), max_level=10), 10)


class TestLevelHelpers(unittest.TestCase):
    """Test next/current level lookups and progress."""

    def test_next_and_current(self):
        self.assertEqual(xp_for_next_level(1), 150)
        self.assertEqual(xp_for_current_level(1), 0)
        self.assertEqual(xp_for_next_level(5), 706)
        self.assertEqual(xp_for_current_level(5), 506)

    def test_progress_midway(self):
        progress = level_progress(428)  # halfway between 337 and 506 is 421.5
        self.assertEqual(progress["current_level"], 4)
        self.assertEqual(progress["current_level_min_xp"], 337)
        self.assertEqual(progress["next_level_min_xp"], 506)
        self.assertEqual(progress["xp_in_level"], 91)
        self.assertEqual(progress["xp_needed_for_next"], 78)
        self.assertAlmostEqual(progress["progress_percent"], 53.85, places=2)

    def test_progress_on_threshold(self):
        progress = level_progress(150)
        self.assertEqual(progress["current_level"], 2)
        self.assertEqual(progress["xp_in_level"], 0)
        self.assertEqual(progress["progress_percent"], 0.0)


if __name__ == "__main__":
    unittest.main()

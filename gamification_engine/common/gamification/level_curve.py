"""
Level Curve

This module maps experience points to levels and back. The curve has three
regimes, continuous at each boundary and strictly increasing:

- Levels 2-5: exponential growth, ``floor(100 * 1.5^(level-1))``
- Levels 6-20: +200 XP per level on top of the level 5 threshold
- Levels 21+: +500 XP per level on top of the level 20 threshold

Early levels come quickly; later levels grow linearly so the curve never
overflows and needs no rebalancing however high users climb.
"""

import math
from typing import Any, Dict

from gamification_engine.common.logger import app_logger

# Set up module logger
logger = app_logger.getChild("gamification.level_curve")

MAX_LEVEL = 10000

EXPONENTIAL_BASE_XP = 100
EXPONENTIAL_GROWTH = 1.5
EXPONENTIAL_LAST_LEVEL = 5

MODERATE_XP_PER_LEVEL = 200
MODERATE_LAST_LEVEL = 20

STEEP_XP_PER_LEVEL = 500


def _exponential_threshold(level: int) -> int:
    return math.floor(EXPONENTIAL_BASE_XP * EXPONENTIAL_GROWTH ** (level - 1))


_LEVEL_5_XP = _exponential_threshold(EXPONENTIAL_LAST_LEVEL)
_LEVEL_20_XP = _LEVEL_5_XP + (MODERATE_LAST_LEVEL - EXPONENTIAL_LAST_LEVEL) * MODERATE_XP_PER_LEVEL


def threshold(level: int) -> int:
    """
    Total XP required to reach a level.

    Args:
        level: Target level; anything at or below 1 needs no XP

    Returns:
        Minimum cumulative XP for the level
    """
    if level <= 1:
        return 0
    if level <= EXPONENTIAL_LAST_LEVEL:
        return _exponential_threshold(level)
    if level <= MODERATE_LAST_LEVEL:
        return _LEVEL_5_XP + (level - EXPONENTIAL_LAST_LEVEL) * MODERATE_XP_PER_LEVEL
    return _LEVEL_20_XP + (level - MODERATE_LAST_LEVEL) * STEEP_XP_PER_LEVEL


def level_from_xp(xp: int, max_level: int = MAX_LEVEL) -> int:
    """
    Largest level whose threshold does not exceed ``xp``.

    A user sitting exactly on a threshold is at that level. The walk stops
    at ``max_level``; hitting the cap means the stored XP is beyond anything
    the curve is meant to express, so it is logged rather than raised.

    Args:
        xp: Cumulative XP
        max_level: Safety ceiling for the walk

    Returns:
        The derived level, at least 1
    """
    level = 1
    while threshold(level + 1) <= xp:
        if level >= max_level:
            logger.warning(f"Level cap {max_level} reached for {xp} XP; returning capped level")
            break
        level += 1
    return level


def xp_for_next_level(current_level: int) -> int:
    """Total XP at which ``current_level + 1`` is reached."""
    return threshold(current_level + 1)


def xp_for_current_level(current_level: int) -> int:
    """Total XP at which ``current_level`` was reached."""
    return threshold(current_level)


def level_progress(total_xp: int, max_level: int = MAX_LEVEL) -> Dict[str, Any]:
    """
    Describe how far a user is through their current level.

    Args:
        total_xp: Cumulative XP
        max_level: Safety ceiling passed to ``level_from_xp``

    Returns:
        Dict with the level, its bounds and the progress inside it
    """
    level = level_from_xp(total_xp, max_level)
    current_min = xp_for_current_level(level)
    next_min = xp_for_next_level(level)

    xp_in_level = total_xp - current_min
    xp_span = next_min - current_min
    progress_percent = min(100.0, (xp_in_level / xp_span) * 100) if xp_span > 0 else 100.0

    return {
        "current_level": level,
        "total_xp": total_xp,
        "current_level_min_xp": current_min,
        "next_level_min_xp": next_min,
        "xp_in_level": xp_in_level,
        "xp_needed_for_next": max(0, next_min - total_xp),
        "progress_percent": round(progress_percent, 2)
    }

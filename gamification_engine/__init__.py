"""
Gamification Engine

Converts learning events into experience points, derives levels from a
non-linear progression curve and awards milestone badges and tier
achievements.
"""

__version__ = "0.1.0"

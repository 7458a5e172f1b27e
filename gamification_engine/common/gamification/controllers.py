"""
Gamification Controllers Module

This module provides API endpoints for the engine:
- Awarding XP
- Reading a user's gamification stats
- Granting and removing badges
- Looking up level thresholds and tiers

Authentication and authorization belong to the host application, which
mounts this router behind its own dependencies.
"""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field, StrictInt

from gamification_engine.common.exceptions import (
    ConcurrencyConflictError,
    GamificationError,
    InvalidInputError,
    NotFoundError,
    StoreUnavailableError,
)
from gamification_engine.common.gamification.service import GamificationService, get_gamification_service
from gamification_engine.common.logger import app_logger

# Set up module logger
logger = app_logger.getChild("gamification.controllers")

RETRY_MESSAGE = "XP not recorded, please retry"

# Create router
router = APIRouter(prefix="/gamification", tags=["Gamification"])


# Request models
class AwardXPRequest(BaseModel):
    user_id: str = Field(..., description="User receiving the XP")
    xp_amount: StrictInt = Field(..., description="Non-negative XP amount")
    reason: Optional[str] = Field(None, description="Why the XP was granted")


class AwardBadgeRequest(BaseModel):
    badge_id: str = Field(..., description="Catalog badge id")


# Response models
class AwardXPResponse(BaseModel):
    user_id: str = Field(..., description="User ID")
    new_total_xp: int = Field(..., description="Total XP after the award")
    new_level: int = Field(..., description="Level after the award")
    level_up: bool = Field(..., description="Whether the award raised the level")
    newly_awarded_badges: List[str] = Field(..., description="Badges granted by this award")


class LevelProgressResponse(BaseModel):
    current_level: int = Field(..., description="Current level")
    total_xp: int = Field(..., description="Current XP")
    current_level_min_xp: int = Field(..., description="XP at which the current level starts")
    next_level_min_xp: int = Field(..., description="XP required for next level")
    xp_in_level: int = Field(..., description="XP earned inside the current level")
    xp_needed_for_next: int = Field(..., description="Remaining XP to next level")
    progress_percent: float = Field(..., description="Progress percentage to next level")


class GamificationStatsResponse(BaseModel):
    user_id: str = Field(..., description="User ID")
    total_xp: int = Field(..., description="Total XP")
    level: int = Field(..., description="Current level")
    badges: List[str] = Field(..., description="Badges held")
    achievements: List[str] = Field(..., description="Achievement tiers reached")
    current_achievement: Optional[str] = Field(None, description="Tier of the current level")
    level_progress: LevelProgressResponse = Field(..., description="Level progress")


class BadgeStateResponse(BaseModel):
    user_id: str = Field(..., description="User ID")
    badges: List[str] = Field(..., description="Badges held after the change")


class LevelInfoResponse(BaseModel):
    level: int = Field(..., description="Level")
    xp_for_level: int = Field(..., description="Total XP at which the level starts")
    xp_for_next_level: int = Field(..., description="Total XP at which the next level starts")
    achievement: Optional[Dict[str, Any]] = Field(None, description="Tier containing the level")
    is_milestone: bool = Field(..., description="Whether the level grants a badge")


def _to_http_error(error: GamificationError) -> HTTPException:
    if isinstance(error, NotFoundError):
        return HTTPException(status_code=404, detail=error.message)
    if isinstance(error, InvalidInputError):
        return HTTPException(status_code=400, detail=error.message)
    if isinstance(error, (ConcurrencyConflictError, StoreUnavailableError)):
        return HTTPException(status_code=503, detail=RETRY_MESSAGE)
    return HTTPException(status_code=500, detail=error.message)


@router.post("/award-xp", response_model=AwardXPResponse)
async def award_xp(
    request: AwardXPRequest,
    service: GamificationService = Depends(get_gamification_service)
) -> Dict[str, Any]:
    """
    Award XP to a user.

    Returns:
        The committed totals and any level-up or badges it caused
    """
    try:
        result = await service.award_xp(request.user_id, request.xp_amount, request.reason)
    except GamificationError as e:
        logger.error(f"Error awarding XP to {request.user_id}: {e}")
        raise _to_http_error(e) from e
    return result.to_dict()


@router.get("/stats/{user_id}", response_model=GamificationStatsResponse)
async def get_stats(
    user_id: str,
    service: GamificationService = Depends(get_gamification_service)
) -> Dict[str, Any]:
    """Get a user's XP, level, badges and achievement tiers."""
    try:
        stats = await service.get_user_gamification_stats(user_id)
    except GamificationError as e:
        logger.error(f"Error getting gamification stats for {user_id}: {e}")
        raise _to_http_error(e) from e
    return stats.to_dict()


@router.post("/badges/{user_id}", response_model=BadgeStateResponse)
async def award_badge(
    user_id: str,
    request: AwardBadgeRequest,
    service: GamificationService = Depends(get_gamification_service)
) -> Dict[str, Any]:
    """Grant a badge to a user."""
    try:
        state = await service.award_badge(user_id, request.badge_id)
    except GamificationError as e:
        logger.error(f"Error awarding badge {request.badge_id} to {user_id}: {e}")
        raise _to_http_error(e) from e
    return {"user_id": user_id, "badges": sorted(state.badges)}


@router.delete("/badges/{user_id}/{badge_id}", response_model=BadgeStateResponse)
async def remove_badge(
    user_id: str,
    badge_id: str,
    service: GamificationService = Depends(get_gamification_service)
) -> Dict[str, Any]:
    """Remove a badge from a user."""
    try:
        state = await service.remove_badge(user_id, badge_id)
    except GamificationError as e:
        logger.error(f"Error removing badge {badge_id} from {user_id}: {e}")
        raise _to_http_error(e) from e
    return {"user_id": user_id, "badges": sorted(state.badges)}


@router.get("/levels/{level}", response_model=LevelInfoResponse)
async def get_level_info(
    level: int,
    service: GamificationService = Depends(get_gamification_service)
) -> Dict[str, Any]:
    """Thresholds, tier and milestone flag for a level."""
    if level < 1:
        raise HTTPException(status_code=400, detail="Level must be at least 1")

    achievement = service.get_achievement_for_level(level)
    return {
        "level": level,
        "xp_for_level": service.get_xp_for_current_level(level),
        "xp_for_next_level": service.get_xp_for_next_level(level),
        "achievement": achievement.to_dict() if achievement else None,
        "is_milestone": service.is_milestone_level(level),
    }

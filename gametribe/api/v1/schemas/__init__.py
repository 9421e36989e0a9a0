"""
API Schemas
"""

from gametribe.api.v1.schemas.gamification import (
    ActionResultOut,
    ApiResponse,
    EarnedAchievementOut,
    GameActionRequest,
    GamePlayRequest,
    GamificationStatsOut,
    LeaderboardEntryOut,
    LoginResultOut,
    PrivilegesOut,
    StatsOut,
)

__all__ = [
    "ApiResponse",
    "GameActionRequest",
    "GamePlayRequest",
    "ActionResultOut",
    "LoginResultOut",
    "StatsOut",
    "EarnedAchievementOut",
    "PrivilegesOut",
    "GamificationStatsOut",
    "LeaderboardEntryOut",
]

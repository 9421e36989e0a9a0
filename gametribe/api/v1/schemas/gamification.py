"""
成长体系 API Schemas

对外 JSON 使用 camelCase，统一包裹在 {success, data, error, warning} 中
"""

from datetime import date, datetime
from typing import Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class CamelModel(BaseModel):
    """camelCase 输出的基类"""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class ApiResponse(CamelModel, Generic[T]):
    """统一响应包"""
    success: bool = True
    data: Optional[T] = None
    error: Optional[str] = None
    warning: Optional[str] = None


# ============ 请求 ============

class GameActionRequest(CamelModel):
    """评分/评论/收藏/分享请求"""
    game_id: str = Field(..., min_length=1, max_length=128, description="游戏 ID")
    content: Optional[str] = Field(None, description="评论内容（可选，用于长度特权校验）")


class GamePlayRequest(CamelModel):
    """游玩请求"""
    game_id: str = Field(..., min_length=1, max_length=128, description="游戏 ID")
    category_id: Optional[str] = Field(None, max_length=128, description="游戏分类")
    platform: Optional[str] = Field(None, max_length=128, description="游戏平台")
    duration_minutes: int = Field(0, ge=0, le=24 * 60, description="本次游玩时长（分钟）")


# ============ 响应 ============

class ActionResultOut(CamelModel):
    """行为追踪结果"""
    xp_earned: int
    new_total_xp: int = Field(..., alias="newTotalXP")
    new_level: int
    old_level: int
    leveled_up: bool
    new_achievements: list[str] = Field(default_factory=list)
    achievement_check_failed: bool = False


class LoginResultOut(CamelModel):
    """每日登录结果"""
    already_done: bool
    login_streak: int
    new_achievements: list[str] = Field(default_factory=list)
    achievement_check_failed: bool = False


class StatsOut(CamelModel):
    """用户统计"""
    user_id: str
    total_xp: int = Field(..., alias="totalXP")
    level: int
    level_tier: str
    games_played: int
    unique_games_played: list[str]
    total_play_time: int
    comments_count: int
    ratings_count: int
    favorites_count: int
    shares_count: int
    categories_played: list[str]
    platforms_played: list[str]
    early_plays: int
    night_plays: int
    login_streak: int
    play_streak: int
    last_login_date: Optional[date] = None
    last_play_date: Optional[date] = None

    # 等级进度
    current_level_xp: int = Field(..., alias="currentLevelXP")
    next_level_xp: int = Field(..., alias="nextLevelXP")
    xp_in_current_level: int = Field(..., alias="xpInCurrentLevel")
    xp_needed_for_next_level: int = Field(..., alias="xpNeededForNextLevel")
    xp_progress: float = Field(..., alias="xpProgress")


class EarnedAchievementOut(CamelModel):
    """已获得成就"""
    achievement_id: str
    name: str
    description: str
    rarity: str
    earned_at: Optional[datetime] = None


class PrivilegesOut(CamelModel):
    """用户特权"""
    favorites_limit: int
    comment_length_limit: int
    bio_length_limit: int
    download_priority: str
    is_featured: bool
    can_access_premium: bool
    can_access_exclusive: bool
    can_access_all_premium: bool
    level: int
    level_tier: str
    achievements: list[str]


class GamificationStatsOut(CamelModel):
    """统计页数据"""
    stats: StatsOut
    achievements: list[EarnedAchievementOut]
    privileges: Optional[PrivilegesOut] = None


class LeaderboardEntryOut(CamelModel):
    """排行榜条目"""
    user_id: str
    total_xp: int = Field(..., alias="totalXP")
    level: int
    display_name: str
    photo_url: Optional[str] = Field(None, alias="photoURL")

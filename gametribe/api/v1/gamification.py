"""
成长体系 API

行为追踪、统计、成就、排行榜与特权查询
"""

from typing import Optional

import structlog
from fastapi import APIRouter, Query
from sqlalchemy.exc import SQLAlchemyError

from gametribe.api.deps import CurrentUserId, DbSession, OptionalUserId
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
from gametribe.core.config import settings
from gametribe.core.exceptions import NotFoundError, StoreUnavailableError
from gametribe.services.achievement_service import AchievementEngine
from gametribe.services.action_tracker import ActionResult, ActionTracker
from gametribe.services.levels import level_progress, level_tier
from gametribe.services.privileges import PrivilegeResolver, check_comment_length
from gametribe.services.stats_store import StatsSnapshot, StatsStore

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/gamification", tags=["gamification"])

ACHIEVEMENT_CHECK_WARNING = "Action recorded, but achievements could not be checked"


def _stats_out(stats: StatsSnapshot) -> StatsOut:
    progress = level_progress(stats.total_xp, stats.level)
    return StatsOut(
        user_id=stats.user_id,
        total_xp=stats.total_xp,
        level=stats.level,
        level_tier=level_tier(stats.level).value,
        games_played=stats.games_played,
        unique_games_played=sorted(stats.unique_games_played),
        total_play_time=stats.total_play_time,
        comments_count=stats.comments_count,
        ratings_count=stats.ratings_count,
        favorites_count=stats.favorites_count,
        shares_count=stats.shares_count,
        categories_played=sorted(stats.categories_played),
        platforms_played=sorted(stats.platforms_played),
        early_plays=stats.early_plays,
        night_plays=stats.night_plays,
        login_streak=stats.login_streak,
        play_streak=stats.play_streak,
        last_login_date=stats.last_login_date,
        last_play_date=stats.last_play_date,
        **progress,
    )


def _action_response(result: ActionResult) -> ApiResponse[ActionResultOut]:
    return ApiResponse[ActionResultOut](
        data=ActionResultOut.model_validate(result),
        warning=ACHIEVEMENT_CHECK_WARNING if result.achievement_check_failed else None,
    )


# ============ 统计 ============

async def _load_stats(
    db: DbSession, user_id: str, viewer_id: Optional[str]
) -> ApiResponse[GamificationStatsOut]:
    """统计 + 成就，本人查看时附带特权"""
    store = StatsStore(db)
    try:
        if not await store.user_exists(user_id):
            raise NotFoundError(f"User not found: {user_id}")
        stats = await store.get_or_create(user_id)
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error("stats_read_failed", user_id=user_id, error=str(e))
        raise StoreUnavailableError("Failed to load stats") from e

    # 成就列表读取失败时降级为空列表
    warning = None
    try:
        earned = await AchievementEngine(db, store).list_earned(user_id)
    except SQLAlchemyError as e:
        await db.rollback()
        logger.warning("achievements_read_failed", user_id=user_id, error=str(e))
        earned = []
        warning = "Achievements are temporarily unavailable"

    privileges = None
    if viewer_id == user_id:
        resolved = await PrivilegeResolver(db, store).get_privileges(
            user_id,
            stats=stats,
            achievement_ids=[a.achievement_id for a in earned] if warning is None else None,
        )
        privileges = PrivilegesOut.model_validate(resolved)

    return ApiResponse[GamificationStatsOut](
        data=GamificationStatsOut(
            stats=_stats_out(stats),
            achievements=[EarnedAchievementOut.model_validate(a) for a in earned],
            privileges=privileges,
        ),
        warning=warning,
    )


@router.get("/stats", response_model=ApiResponse[GamificationStatsOut])
async def get_my_stats(user_id: CurrentUserId, db: DbSession):
    """当前用户的统计、成就和特权"""
    return await _load_stats(db, user_id, viewer_id=user_id)


@router.get("/stats/{user_id}", response_model=ApiResponse[GamificationStatsOut])
async def get_user_stats(user_id: str, viewer_id: OptionalUserId, db: DbSession):
    """
    指定用户的统计和成就

    只有本人查看时才返回特权
    """
    return await _load_stats(db, user_id, viewer_id=viewer_id)


# ============ 行为追踪 ============

@router.post("/track/game-play", response_model=ApiResponse[ActionResultOut])
async def track_game_play(body: GamePlayRequest, user_id: CurrentUserId, db: DbSession):
    """记录一次游玩（+10 XP）"""
    result = await ActionTracker(db).track_game_play(
        user_id,
        body.game_id,
        category_id=body.category_id,
        platform=body.platform,
        duration_minutes=body.duration_minutes,
    )
    return _action_response(result)


@router.post("/track/rating", response_model=ApiResponse[ActionResultOut])
async def track_rating(body: GameActionRequest, user_id: CurrentUserId, db: DbSession):
    """记录一次评分（+5 XP）"""
    result = await ActionTracker(db).track_rating(user_id, body.game_id)
    return _action_response(result)


@router.post("/track/comment", response_model=ApiResponse[ActionResultOut])
async def track_comment(body: GameActionRequest, user_id: CurrentUserId, db: DbSession):
    """
    记录一次评论（+3 XP）

    带 content 时先按特权校验评论长度，超限返回 403 且不记录
    """
    if body.content is not None:
        privileges = await PrivilegeResolver(db).get_privileges(user_id)
        check_comment_length(privileges, body.content)

    result = await ActionTracker(db).track_comment(user_id, body.game_id)
    return _action_response(result)


@router.post("/track/favorite", response_model=ApiResponse[ActionResultOut])
async def track_favorite(body: GameActionRequest, user_id: CurrentUserId, db: DbSession):
    """记录一次收藏（不加 XP）"""
    result = await ActionTracker(db).track_favorite(user_id, body.game_id)
    return _action_response(result)


@router.post("/track/share", response_model=ApiResponse[ActionResultOut])
async def track_share(body: GameActionRequest, user_id: CurrentUserId, db: DbSession):
    """记录一次分享（+5 XP）"""
    result = await ActionTracker(db).track_share(user_id, body.game_id)
    return _action_response(result)


@router.post("/track/login", response_model=ApiResponse[LoginResultOut])
async def track_login(user_id: CurrentUserId, db: DbSession):
    """记录每日登录"""
    result = await ActionTracker(db).track_daily_login(user_id)
    return ApiResponse[LoginResultOut](
        data=LoginResultOut.model_validate(result),
        warning=ACHIEVEMENT_CHECK_WARNING if result.achievement_check_failed else None,
    )


# ============ 成就 ============

async def _list_achievements(db: DbSession, user_id: str) -> ApiResponse[list[EarnedAchievementOut]]:
    try:
        earned = await AchievementEngine(db).list_earned(user_id)
    except SQLAlchemyError as e:
        logger.error("achievements_read_failed", user_id=user_id, error=str(e))
        raise StoreUnavailableError("Failed to load achievements") from e
    return ApiResponse[list[EarnedAchievementOut]](
        data=[EarnedAchievementOut.model_validate(a) for a in earned]
    )


@router.get("/achievements", response_model=ApiResponse[list[EarnedAchievementOut]])
async def get_my_achievements(user_id: CurrentUserId, db: DbSession):
    """当前用户已获得的成就"""
    return await _list_achievements(db, user_id)


@router.get("/achievements/{user_id}", response_model=ApiResponse[list[EarnedAchievementOut]])
async def get_user_achievements(user_id: str, db: DbSession):
    """指定用户已获得的成就"""
    return await _list_achievements(db, user_id)


# ============ 排行榜 ============

@router.get("/leaderboard", response_model=ApiResponse[list[LeaderboardEntryOut]])
async def get_leaderboard(
    db: DbSession,
    limit: int = Query(
        settings.LEADERBOARD_DEFAULT_LIMIT,
        ge=1,
        le=settings.LEADERBOARD_MAX_LIMIT,
        description="返回条数",
    ),
):
    """按总经验排序的排行榜"""
    try:
        rows = await StatsStore(db).top_by_xp(limit)
    except SQLAlchemyError as e:
        logger.error("leaderboard_read_failed", error=str(e))
        raise StoreUnavailableError("Failed to load leaderboard") from e
    return ApiResponse[list[LeaderboardEntryOut]](
        data=[LeaderboardEntryOut.model_validate(row) for row in rows]
    )


# ============ 特权 ============

@router.get("/privileges", response_model=ApiResponse[PrivilegesOut])
async def get_my_privileges(user_id: CurrentUserId, db: DbSession):
    """当前用户的特权"""
    privileges = await PrivilegeResolver(db).get_privileges(user_id)
    return ApiResponse[PrivilegesOut](data=PrivilegesOut.model_validate(privileges))


@router.get("/privileges/{user_id}", response_model=ApiResponse[PrivilegesOut])
async def get_user_privileges(user_id: str, db: DbSession):
    """指定用户的特权"""
    privileges = await PrivilegeResolver(db).get_privileges(user_id)
    return ApiResponse[PrivilegesOut](data=PrivilegesOut.model_validate(privileges))

"""
行为追踪服务

玩游戏、评分、评论、分享、收藏、每日登录等行为的统一入口：
1. 更新统计（原子自增 / 加入集合 / 连续天数）
2. 发放经验并重算等级
3. 触发成就检查

第 1、2 步在同一事务内，失败整体回滚并抛出 StoreUnavailableError；
第 3 步在独立事务内尽力而为，失败只记日志，不回滚已提交的统计
"""

from dataclasses import dataclass, field
from datetime import date, datetime, tzinfo
from enum import Enum
from typing import Awaitable, Callable, Optional
from zoneinfo import ZoneInfo

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from gametribe.core.config import settings
from gametribe.core.exceptions import InvalidInputError, StoreUnavailableError
from gametribe.database.models import StatSetKind
from gametribe.services.achievement_registry import AchievementDefinition
from gametribe.services.achievement_service import AchievementEngine
from gametribe.services.levels import level_from_xp
from gametribe.services.stats_store import StatsSnapshot, StatsStore

logger = structlog.get_logger(__name__)

EARLY_HOUR = 9    # 早于 9 点算早鸟
NIGHT_HOUR = 22   # 22 点及以后算夜猫
MAX_ID_LENGTH = 128


class TrackedAction(str, Enum):
    """计入经验的行为"""
    PLAY_GAME = "play_game"
    RATE_GAME = "rate_game"
    COMMENT = "comment"
    SHARE_GAME = "share_game"
    FAVORITE = "favorite"


XP_VALUES: dict[TrackedAction, int] = {
    TrackedAction.PLAY_GAME: 10,
    TrackedAction.RATE_GAME: 5,
    TrackedAction.COMMENT: 3,
    TrackedAction.SHARE_GAME: 5,
    TrackedAction.FAVORITE: 0,
}


class StreakTransition(str, Enum):
    """连续天数的状态迁移"""
    FIRST = "first"              # 没有历史记录 -> 1
    SAME_DAY = "same_day"        # 今天已记录 -> 不变
    CONSECUTIVE = "consecutive"  # 昨天有记录 -> +1
    BROKEN = "broken"            # 中断超过一天 -> 1


def streak_transition(last_date: Optional[date], today: date) -> StreakTransition:
    """根据上次日期判断连续天数如何变化"""
    if last_date is None:
        return StreakTransition.FIRST
    days = (today - last_date).days
    if days <= 0:
        # 时钟回拨也按同一天处理，避免把日期写回过去
        return StreakTransition.SAME_DAY
    if days == 1:
        return StreakTransition.CONSECUTIVE
    return StreakTransition.BROKEN


@dataclass
class ActionResult:
    """计经验行为的结果"""
    xp_earned: int
    new_total_xp: int
    new_level: int
    old_level: int
    leveled_up: bool
    new_achievements: list[str] = field(default_factory=list)
    achievement_check_failed: bool = False


@dataclass
class LoginResult:
    """每日登录的结果"""
    already_done: bool
    login_streak: int
    new_achievements: list[str] = field(default_factory=list)
    achievement_check_failed: bool = False


def _require_id(value: Optional[str], message: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise InvalidInputError(message)
    value = value.strip()
    if len(value) > MAX_ID_LENGTH:
        raise InvalidInputError(f"{message} (max {MAX_ID_LENGTH} characters)")
    return value


class ActionTracker:
    """行为追踪器"""

    def __init__(
        self,
        db: AsyncSession,
        store: Optional[StatsStore] = None,
        achievements: Optional[AchievementEngine] = None,
        tz: Optional[tzinfo] = None,
    ):
        self.db = db
        self.store = store or StatsStore(db)
        self.achievements = achievements or AchievementEngine(db, self.store)
        self.tz = tz or ZoneInfo(settings.GAMIFICATION_TIMEZONE)

    # ============ 行为入口 ============

    async def track_game_play(
        self,
        user_id: str,
        game_id: str,
        category_id: Optional[str] = None,
        platform: Optional[str] = None,
        duration_minutes: int = 0,
        now: Optional[datetime] = None,
    ) -> ActionResult:
        """
        记录一次游玩

        Args:
            user_id: 用户 ID
            game_id: 游戏 ID
            category_id: 游戏分类（可选）
            platform: 游戏平台（可选）
            duration_minutes: 本次游玩时长，计入总时长
            now: 当前时间（测试时注入），默认取配置时区的当前时间
        """
        game_id = _require_id(game_id, "Game ID is required")
        category_id = _require_id(category_id, "Invalid category ID") if category_id else None
        platform = _require_id(platform, "Invalid platform") if platform else None
        if duration_minutes < 0:
            raise InvalidInputError("Play duration cannot be negative")

        local_now = self._local_now(now)
        today = local_now.date()

        async def mutate(stats: StatsSnapshot) -> None:
            deltas = {"games_played": 1}
            if local_now.hour < EARLY_HOUR:
                deltas["early_plays"] = 1
            elif local_now.hour >= NIGHT_HOUR:
                deltas["night_plays"] = 1
            if duration_minutes:
                deltas["total_play_time"] = duration_minutes
            await self.store.increment(stats.user_id, **deltas)

            await self.store.add_to_set(stats.user_id, StatSetKind.GAME, game_id)
            if category_id:
                await self.store.add_to_set(stats.user_id, StatSetKind.CATEGORY, category_id)
            if platform:
                await self.store.add_to_set(stats.user_id, StatSetKind.PLATFORM, platform)

            transition = streak_transition(stats.last_play_date, today)
            if transition is not StreakTransition.SAME_DAY:
                written = await self.store.set_streak(
                    stats.user_id,
                    "play",
                    observed_date=stats.last_play_date,
                    today=today,
                    consecutive=transition is StreakTransition.CONSECUTIVE,
                )
                if not written:
                    logger.info("play_streak_concurrent_update", user_id=stats.user_id)

        return await self._record(
            user_id, TrackedAction.PLAY_GAME, mutate, game_id=game_id
        )

    async def track_rating(self, user_id: str, game_id: str) -> ActionResult:
        return await self._track_counter(user_id, game_id, TrackedAction.RATE_GAME, "ratings_count")

    async def track_comment(self, user_id: str, game_id: str) -> ActionResult:
        return await self._track_counter(user_id, game_id, TrackedAction.COMMENT, "comments_count")

    async def track_share(self, user_id: str, game_id: str) -> ActionResult:
        return await self._track_counter(user_id, game_id, TrackedAction.SHARE_GAME, "shares_count")

    async def track_favorite(self, user_id: str, game_id: str) -> ActionResult:
        """收藏不加经验，但仍检查成就"""
        return await self._track_counter(user_id, game_id, TrackedAction.FAVORITE, "favorites_count")

    async def track_daily_login(
        self, user_id: str, now: Optional[datetime] = None
    ) -> LoginResult:
        """
        记录每日登录（不加经验）

        同一天重复调用直接返回 already_done，不触发成就检查
        """
        today = self._local_now(now).date()

        try:
            await self._ensure_known_user(user_id)
            stats = await self.store.get_or_create(user_id)

            transition = streak_transition(stats.last_login_date, today)
            if transition is StreakTransition.SAME_DAY:
                await self.db.commit()
                return LoginResult(already_done=True, login_streak=stats.login_streak)

            consecutive = transition is StreakTransition.CONSECUTIVE
            written = await self.store.set_streak(
                user_id,
                "login",
                observed_date=stats.last_login_date,
                today=today,
                consecutive=consecutive,
            )
            if not written:
                # 并发的另一次登录已经记下了今天
                current = await self.store.get(user_id)
                await self.db.commit()
                return LoginResult(already_done=True, login_streak=current.login_streak)

            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error("track_login_failed", user_id=user_id, error=str(e))
            raise StoreUnavailableError("Failed to record daily login") from e

        login_streak = stats.login_streak + 1 if consecutive else 1
        logger.info("daily_login_recorded", user_id=user_id, login_streak=login_streak)

        unlocked, failed = await self._run_achievement_check(
            user_id, self.achievements.check_login_streak
        )
        return LoginResult(
            already_done=False,
            login_streak=login_streak,
            new_achievements=unlocked,
            achievement_check_failed=failed,
        )

    # ============ 内部实现 ============

    async def _track_counter(
        self,
        user_id: str,
        game_id: str,
        action: TrackedAction,
        counter: str,
    ) -> ActionResult:
        game_id = _require_id(game_id, "Game ID is required")

        async def mutate(stats: StatsSnapshot) -> None:
            await self.store.increment(stats.user_id, **{counter: 1})

        return await self._record(user_id, action, mutate, game_id=game_id)

    async def _record(
        self,
        user_id: str,
        action: TrackedAction,
        mutate: Callable[[StatsSnapshot], Awaitable[None]],
        game_id: Optional[str] = None,
    ) -> ActionResult:
        """统计更新 + 发经验（同一事务），然后尽力检查成就"""
        try:
            await self._ensure_known_user(user_id)
            stats = await self.store.get_or_create(user_id)
            await mutate(stats)
            result = await self._award_xp(user_id, action, game_id)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(
                "track_action_failed",
                user_id=user_id,
                action=action.value,
                error=str(e),
            )
            raise StoreUnavailableError(f"Failed to record {action.value}") from e

        unlocked, failed = await self._run_achievement_check(
            user_id, self.achievements.check_all
        )
        result.new_achievements = unlocked
        result.achievement_check_failed = failed
        return result

    async def _award_xp(
        self, user_id: str, action: TrackedAction, game_id: Optional[str]
    ) -> ActionResult:
        xp = XP_VALUES[action]
        new_total, old_level = await self.store.add_xp(user_id, xp)
        new_level = level_from_xp(new_total)

        if new_level > old_level:
            await self.store.raise_level(user_id, new_level)
            logger.info(
                "level_up",
                user_id=user_id,
                old_level=old_level,
                new_level=new_level,
            )

        if xp:
            await self.store.log_xp(
                user_id,
                xp_amount=xp,
                action=action.value,
                total_xp=new_total,
                level=new_level,
                game_id=game_id,
            )

        return ActionResult(
            xp_earned=xp,
            new_total_xp=new_total,
            new_level=new_level,
            old_level=old_level,
            leveled_up=new_level > old_level,
        )

    async def _run_achievement_check(
        self,
        user_id: str,
        check: Callable[[str], Awaitable[list[AchievementDefinition]]],
    ) -> tuple[list[str], bool]:
        """
        成就检查（独立事务，失败不影响已提交的统计）

        Returns:
            (新成就 ID 列表, 是否失败)
        """
        try:
            unlocked = await check(user_id)
            await self.db.commit()
        except Exception as e:
            await self.db.rollback()
            logger.exception("achievement_check_failed", user_id=user_id, error=str(e))
            return [], True
        return [a.id for a in unlocked], False

    async def _ensure_known_user(self, user_id: str) -> None:
        _require_id(user_id, "User ID is required")
        if not await self.store.user_exists(user_id):
            raise InvalidInputError(f"Unknown user: {user_id}")

    def _local_now(self, now: Optional[datetime]) -> datetime:
        if now is None:
            return datetime.now(self.tz)
        if now.tzinfo is None:
            return now
        return now.astimezone(self.tz)

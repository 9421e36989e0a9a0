"""
用户统计存储

每个用户一行统计记录，首次读写时惰性创建。所有计数器都用数据库原子自增
（SET col = col + n），集合字段用"不存在才插入"，不做应用层的读-改-写
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional

import structlog
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from gametribe.core.exceptions import StoreUnavailableError
from gametribe.database.models import (
    StatSetKind,
    User,
    UserStats,
    UserStatsSetMember,
    XPTransaction,
)
from gametribe.database.upsert import insert_ignore

logger = structlog.get_logger(__name__)


COUNTER_FIELDS = frozenset({
    "games_played",
    "total_play_time",
    "comments_count",
    "ratings_count",
    "favorites_count",
    "shares_count",
    "early_plays",
    "night_plays",
})

# 连续天数类型 -> (streak 列, 日期列)
_STREAK_COLUMNS = {
    "play": (UserStats.play_streak, UserStats.last_play_date),
    "login": (UserStats.login_streak, UserStats.last_login_date),
}


@dataclass(frozen=True)
class StatsSnapshot:
    """某一时刻的用户统计快照"""
    user_id: str
    total_xp: int = 0
    level: int = 1
    games_played: int = 0
    unique_games_played: frozenset[str] = field(default_factory=frozenset)
    total_play_time: int = 0
    comments_count: int = 0
    ratings_count: int = 0
    favorites_count: int = 0
    shares_count: int = 0
    categories_played: frozenset[str] = field(default_factory=frozenset)
    platforms_played: frozenset[str] = field(default_factory=frozenset)
    early_plays: int = 0
    night_plays: int = 0
    login_streak: int = 0
    play_streak: int = 0
    last_login_date: Optional[date] = None
    last_play_date: Optional[date] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass
class LeaderboardRow:
    """排行榜条目"""
    user_id: str
    total_xp: int
    level: int
    display_name: str
    photo_url: Optional[str]


class StatsStore:
    """用户统计存储"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def user_exists(self, user_id: str) -> bool:
        result = await self.db.execute(select(User.id).where(User.id == user_id))
        return result.scalar_one_or_none() is not None

    async def ensure(self, user_id: str) -> None:
        """不存在则创建全零的统计记录"""
        stmt = insert_ignore(self.db, UserStats, ["user_id"]).values(
            user_id=user_id,
            total_xp=0,
            level=1,
        )
        result = await self.db.execute(stmt)
        if result.rowcount:
            logger.info("user_stats_created", user_id=user_id)

    async def get(self, user_id: str) -> Optional[StatsSnapshot]:
        """读取统计快照，不存在返回 None"""
        result = await self.db.execute(
            select(UserStats)
            .where(UserStats.user_id == user_id)
            .execution_options(populate_existing=True)
        )
        row = result.scalar_one_or_none()
        if row is None:
            return None

        members = await self._get_set_members(user_id)

        return StatsSnapshot(
            user_id=row.user_id,
            total_xp=row.total_xp,
            level=row.level,
            games_played=row.games_played,
            unique_games_played=members[StatSetKind.GAME],
            total_play_time=row.total_play_time,
            comments_count=row.comments_count,
            ratings_count=row.ratings_count,
            favorites_count=row.favorites_count,
            shares_count=row.shares_count,
            categories_played=members[StatSetKind.CATEGORY],
            platforms_played=members[StatSetKind.PLATFORM],
            early_plays=row.early_plays,
            night_plays=row.night_plays,
            login_streak=row.login_streak,
            play_streak=row.play_streak,
            last_login_date=row.last_login_date,
            last_play_date=row.last_play_date,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    async def get_or_create(self, user_id: str) -> StatsSnapshot:
        await self.ensure(user_id)
        snapshot = await self.get(user_id)
        if snapshot is None:
            raise StoreUnavailableError(f"Stats record missing after create: {user_id}")
        return snapshot

    async def _get_set_members(self, user_id: str) -> dict[str, frozenset[str]]:
        result = await self.db.execute(
            select(UserStatsSetMember.kind, UserStatsSetMember.value).where(
                UserStatsSetMember.user_id == user_id
            )
        )
        grouped: dict[str, set[str]] = {
            StatSetKind.GAME: set(),
            StatSetKind.CATEGORY: set(),
            StatSetKind.PLATFORM: set(),
        }
        for kind, value in result.all():
            grouped.setdefault(kind, set()).add(value)
        return {kind: frozenset(values) for kind, values in grouped.items()}

    async def increment(self, user_id: str, **deltas: int) -> None:
        """原子自增一个或多个计数器"""
        unknown = set(deltas) - COUNTER_FIELDS
        if unknown:
            raise ValueError(f"未知的计数字段: {sorted(unknown)}")
        if not deltas:
            return

        values = {name: getattr(UserStats, name) + delta for name, delta in deltas.items()}
        await self.db.execute(
            update(UserStats)
            .where(UserStats.user_id == user_id)
            .values(values)
            .execution_options(synchronize_session=False)
        )

    async def add_to_set(self, user_id: str, kind: str, value: str) -> bool:
        """
        把 value 加入集合字段

        Returns:
            是否为新成员
        """
        stmt = insert_ignore(
            self.db, UserStatsSetMember, ["user_id", "kind", "value"]
        ).values(user_id=user_id, kind=kind, value=value)
        result = await self.db.execute(stmt)
        return bool(result.rowcount)

    async def set_streak(
        self,
        user_id: str,
        streak_kind: str,
        observed_date: Optional[date],
        today: date,
        consecutive: bool,
    ) -> bool:
        """
        更新连续天数（以读到的日期做比较交换）

        Args:
            streak_kind: play / login
            observed_date: 读快照时看到的上次日期
            today: 今天
            consecutive: True 则 streak + 1，否则重置为 1

        Returns:
            是否写入成功；False 表示期间已被并发请求更新
        """
        streak_col, date_col = _STREAK_COLUMNS[streak_kind]

        if observed_date is None:
            guard = date_col.is_(None)
        else:
            guard = date_col == observed_date

        new_streak = streak_col + 1 if consecutive else 1
        result = await self.db.execute(
            update(UserStats)
            .where(UserStats.user_id == user_id, guard)
            .values({streak_col.key: new_streak, date_col.key: today})
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def add_xp(self, user_id: str, xp: int) -> tuple[int, int]:
        """
        原子增加经验

        Returns:
            (入账后总经验, 入账前等级)
        """
        result = await self.db.execute(
            update(UserStats)
            .where(UserStats.user_id == user_id)
            .values(total_xp=UserStats.total_xp + xp)
            .returning(UserStats.total_xp, UserStats.level)
            .execution_options(synchronize_session=False)
        )
        new_total, old_level = result.one()
        return new_total, old_level

    async def raise_level(self, user_id: str, level: int) -> None:
        """等级只升不降，并发时较高的值胜出"""
        await self.db.execute(
            update(UserStats)
            .where(UserStats.user_id == user_id, UserStats.level < level)
            .values(level=level)
            .execution_options(synchronize_session=False)
        )

    async def log_xp(
        self,
        user_id: str,
        xp_amount: int,
        action: str,
        total_xp: int,
        level: int,
        game_id: Optional[str] = None,
        details: Optional[dict] = None,
    ) -> XPTransaction:
        """追加一条经验值流水"""
        transaction = XPTransaction(
            user_id=user_id,
            xp_amount=xp_amount,
            action=action,
            game_id=game_id,
            details=details,
            total_xp=total_xp,
            level=level,
        )
        self.db.add(transaction)
        await self.db.flush()
        return transaction

    async def top_by_xp(self, limit: int) -> list[LeaderboardRow]:
        """按总经验降序的排行榜"""
        result = await self.db.execute(
            select(UserStats, User)
            .outerjoin(User, User.id == UserStats.user_id)
            .order_by(UserStats.total_xp.desc(), UserStats.user_id)
            .limit(limit)
        )

        rows = []
        for stats, user in result.all():
            rows.append(
                LeaderboardRow(
                    user_id=stats.user_id,
                    total_xp=stats.total_xp or 0,
                    level=stats.level or 1,
                    display_name=user.public_name if user else "Anonymous",
                    photo_url=user.photo_url if user else None,
                )
            )
        return rows

    async def all_user_ids(self) -> list[str]:
        result = await self.db.execute(select(UserStats.user_id).order_by(UserStats.user_id))
        return list(result.scalars().all())

    async def count(self) -> int:
        result = await self.db.execute(select(func.count()).select_from(UserStats))
        return result.scalar_one()

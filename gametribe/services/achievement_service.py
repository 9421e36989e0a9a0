"""
成就规则引擎服务

对照成就目录检查用户统计快照，颁发新达成的成就。
颁发依赖 (user_id, achievement_id) 唯一索引，重复调用不会重复颁发
"""

from typing import Iterable, Optional

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from gametribe.database.models import EarnedAchievement
from gametribe.database.upsert import insert_ignore
from gametribe.services.achievement_registry import (
    ACHIEVEMENTS,
    LOGIN_STREAK_ACHIEVEMENTS,
    AchievementDefinition,
    all_definitions,
)
from gametribe.services.stats_store import StatsSnapshot, StatsStore

logger = structlog.get_logger(__name__)


class AchievementEngine:
    """成就引擎"""

    def __init__(self, db: AsyncSession, store: Optional[StatsStore] = None):
        self.db = db
        self.store = store or StatsStore(db)

    async def check_all(self, user_id: str) -> list[AchievementDefinition]:
        """
        检查全部行为成就

        统计快照只读取一次，所有未获得的成就都会被评估（不提前退出）

        Returns:
            本次新获得的成就列表
        """
        stats = await self.store.get_or_create(user_id)
        return await self._grant_satisfied(user_id, stats, ACHIEVEMENTS)

    async def check_login_streak(self, user_id: str) -> list[AchievementDefinition]:
        """检查连续登录成就"""
        stats = await self.store.get_or_create(user_id)
        return await self._grant_satisfied(user_id, stats, LOGIN_STREAK_ACHIEVEMENTS)

    async def pending(self, user_id: str) -> list[AchievementDefinition]:
        """已满足条件但尚未颁发的成就（只读，不写入）"""
        stats = await self.store.get(user_id)
        if stats is None:
            return []
        earned = await self.earned_ids(user_id)
        return [
            definition
            for definition in all_definitions()
            if definition.id not in earned and definition.condition.is_met(stats)
        ]

    async def earned_ids(self, user_id: str) -> set[str]:
        """用户已获得的成就 ID 集合（一次查询）"""
        result = await self.db.execute(
            select(EarnedAchievement.achievement_id).where(
                EarnedAchievement.user_id == user_id
            )
        )
        return set(result.scalars().all())

    async def list_earned(self, user_id: str) -> list[EarnedAchievement]:
        """用户已获得的成就，按获得时间倒序"""
        result = await self.db.execute(
            select(EarnedAchievement)
            .where(EarnedAchievement.user_id == user_id)
            .order_by(EarnedAchievement.earned_at.desc(), EarnedAchievement.achievement_id)
        )
        return list(result.scalars().all())

    async def _grant_satisfied(
        self,
        user_id: str,
        stats: StatsSnapshot,
        definitions: Iterable[AchievementDefinition],
    ) -> list[AchievementDefinition]:
        earned = await self.earned_ids(user_id)
        unlocked = []

        for definition in definitions:
            if definition.id in earned:
                continue
            if not definition.condition.is_met(stats):
                continue

            if await self._grant(user_id, definition):
                unlocked.append(definition)
                logger.info(
                    "achievement_earned",
                    user_id=user_id,
                    achievement_id=definition.id,
                    rarity=definition.rarity.value,
                )

        return unlocked

    async def _grant(self, user_id: str, definition: AchievementDefinition) -> bool:
        """写入获得记录；已存在（并发颁发）时返回 False"""
        stmt = insert_ignore(
            self.db, EarnedAchievement, ["user_id", "achievement_id"]
        ).values(
            user_id=user_id,
            achievement_id=definition.id,
            name=definition.name,
            description=definition.description,
            rarity=definition.rarity.value,
        )
        result = await self.db.execute(stmt)
        return bool(result.rowcount)

"""
用户特权

特权完全由等级和已获得的成就推导，不落库、不缓存，每次请求重新计算。
同一项限额有多个档位时，按表中顺序取第一个已解锁的档位（高档优先）
"""

from dataclasses import asdict, dataclass, field
from typing import Iterable, Optional

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from gametribe.core.exceptions import PrivilegeLimitError
from gametribe.services.achievement_service import AchievementEngine
from gametribe.services.levels import LevelTier, level_tier
from gametribe.services.stats_store import StatsSnapshot, StatsStore

logger = structlog.get_logger(__name__)


# (成就 ID, 档位值)，高档在前
FAVORITES_LIMIT_TIERS = (("critic", 200), ("collector", 100))
FAVORITES_LIMIT_DEFAULT = 50

COMMENT_LENGTH_TIERS = (("critic", 2000), ("social_butterfly", 1000))
COMMENT_LENGTH_DEFAULT = 500

BIO_LENGTH_TIERS = (("explorer", 1000), ("social_butterfly", 500))
BIO_LENGTH_DEFAULT = 200

DOWNLOAD_PRIORITY_TIERS = (("critic", "instant"), ("marathon_gamer", "priority"))
DOWNLOAD_PRIORITY_DEFAULT = "normal"

FEATURED_ACHIEVEMENTS = ("category_master", "platform_hopper")

PREMIUM_LEVEL = 50
EXCLUSIVE_LEVEL = 100
ALL_PREMIUM_LEVEL = 150

# 升档提示用的成就说明
_ACHIEVEMENT_HINTS = {
    "collector": '"Collector" achievement (25 favorites)',
    "critic": '"Critic" achievement (50 ratings)',
    "social_butterfly": '"Social Butterfly" achievement (20 comments)',
    "explorer": '"Explorer" achievement (10 games)',
}


@dataclass(frozen=True)
class Privileges:
    """用户特权"""
    favorites_limit: int = FAVORITES_LIMIT_DEFAULT
    comment_length_limit: int = COMMENT_LENGTH_DEFAULT
    bio_length_limit: int = BIO_LENGTH_DEFAULT
    download_priority: str = DOWNLOAD_PRIORITY_DEFAULT
    is_featured: bool = False
    can_access_premium: bool = False
    can_access_exclusive: bool = False
    can_access_all_premium: bool = False
    level: int = 1
    level_tier: str = LevelTier.NOVICE.value
    achievements: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return asdict(self)


DEFAULT_PRIVILEGES = Privileges()


def _first_unlocked(tiers, achievement_ids: set[str], default):
    for achievement_id, value in tiers:
        if achievement_id in achievement_ids:
            return value
    return default


def derive_privileges(level: int, achievement_ids: Iterable[str]) -> Privileges:
    """由等级和成就集合推导特权（纯函数）"""
    ids = list(dict.fromkeys(achievement_ids))
    id_set = set(ids)

    return Privileges(
        favorites_limit=_first_unlocked(FAVORITES_LIMIT_TIERS, id_set, FAVORITES_LIMIT_DEFAULT),
        comment_length_limit=_first_unlocked(COMMENT_LENGTH_TIERS, id_set, COMMENT_LENGTH_DEFAULT),
        bio_length_limit=_first_unlocked(BIO_LENGTH_TIERS, id_set, BIO_LENGTH_DEFAULT),
        download_priority=_first_unlocked(
            DOWNLOAD_PRIORITY_TIERS, id_set, DOWNLOAD_PRIORITY_DEFAULT
        ),
        is_featured=any(a in id_set for a in FEATURED_ACHIEVEMENTS),
        can_access_premium=level >= PREMIUM_LEVEL,
        can_access_exclusive=level >= EXCLUSIVE_LEVEL,
        can_access_all_premium=level >= ALL_PREMIUM_LEVEL,
        level=level,
        level_tier=level_tier(level).value,
        achievements=ids,
    )


class PrivilegeResolver:
    """特权解析器（只读）"""

    def __init__(self, db: AsyncSession, store: Optional[StatsStore] = None):
        self.db = db
        self.store = store or StatsStore(db)
        self.achievements = AchievementEngine(db, self.store)

    async def get_privileges(
        self,
        user_id: str,
        stats: Optional[StatsSnapshot] = None,
        achievement_ids: Optional[Iterable[str]] = None,
    ) -> Privileges:
        """
        获取用户特权

        调用方已经持有统计或成就数据时直接传入，避免重复读取。
        自行读取失败时降级为 DEFAULT_PRIVILEGES
        """
        try:
            if stats is None:
                stats = await self.store.get(user_id)
            if achievement_ids is None:
                achievement_ids = sorted(await self.achievements.earned_ids(user_id))
        except SQLAlchemyError as e:
            logger.warning("privileges_fallback_to_default", user_id=user_id, error=str(e))
            return DEFAULT_PRIVILEGES

        level = stats.level if stats else 1
        return derive_privileges(level, achievement_ids)


# ============ 限额校验 ============

def _next_tier_hint(tiers, current, unit: str) -> str:
    """当前档位之上还能解锁哪些档位"""
    higher = []
    for achievement_id, value in reversed(tiers):
        if value > current:
            higher.append(f"{_ACHIEVEMENT_HINTS[achievement_id]} for {value}{unit}")
    if not higher:
        return ""
    return "Earn the " + ", or the ".join(higher) + "!"


def check_comment_length(privileges: Privileges, content: str) -> None:
    """评论长度超限时抛出 PrivilegeLimitError"""
    limit = privileges.comment_length_limit
    if len(content) <= limit:
        return
    hint = _next_tier_hint(COMMENT_LENGTH_TIERS, limit, " characters")
    raise PrivilegeLimitError(
        f"Comment cannot exceed {limit} characters. {hint}".strip(), limit
    )


def check_bio_length(privileges: Privileges, bio: str) -> None:
    """简介长度超限时抛出 PrivilegeLimitError"""
    limit = privileges.bio_length_limit
    if len(bio) <= limit:
        return
    hint = _next_tier_hint(BIO_LENGTH_TIERS, limit, " characters")
    raise PrivilegeLimitError(
        f"Bio cannot exceed {limit} characters. {hint}".strip(), limit
    )


def check_favorites_capacity(privileges: Privileges, current_count: int) -> None:
    """收藏已满时抛出 PrivilegeLimitError"""
    limit = privileges.favorites_limit
    if current_count < limit:
        return
    hint = _next_tier_hint(FAVORITES_LIMIT_TIERS, limit, " favorites")
    raise PrivilegeLimitError(
        f"Favorites limit of {limit} reached. {hint}".strip(), limit
    )


def download_priority_message(priority: str) -> str:
    """下载优先级的展示文案"""
    if priority == "instant":
        return "Instant download (Critic achievement unlocked)"
    if priority == "priority":
        return "Priority download (Marathon Gamer achievement unlocked)"
    return ""

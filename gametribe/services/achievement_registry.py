"""
成就目录

静态、不可变的成就定义。每个条件由 ConditionKind（封闭枚举）
加一个数值阈值组成，指标的取值方式与枚举成员一一对应
"""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from gametribe.services.stats_store import StatsSnapshot


class Rarity(str, Enum):
    """稀有度"""
    COMMON = "common"
    RARE = "rare"
    EPIC = "epic"
    LEGENDARY = "legendary"


class ConditionKind(str, Enum):
    """条件类型"""
    GAMES_PLAYED = "games_played"
    UNIQUE_GAMES_PLAYED = "unique_games_played"
    TOTAL_PLAY_TIME_HOURS = "total_play_time"
    COMMENTS_COUNT = "comments_count"
    RATINGS_COUNT = "ratings_count"
    FAVORITES_COUNT = "favorites_count"
    EARLY_PLAYS = "early_plays"
    NIGHT_PLAYS = "night_plays"
    CATEGORIES_PLAYED = "categories_played"
    PLATFORMS_PLAYED = "platforms_played"
    LOGIN_STREAK = "login_streak"

    def measure(self, stats: StatsSnapshot) -> float:
        """从统计快照中取出该条件比较的指标值"""
        return _MEASURES[self](stats)


_MEASURES: dict[ConditionKind, Callable[[StatsSnapshot], float]] = {
    ConditionKind.GAMES_PLAYED: lambda s: s.games_played,
    ConditionKind.UNIQUE_GAMES_PLAYED: lambda s: len(s.unique_games_played),
    ConditionKind.TOTAL_PLAY_TIME_HOURS: lambda s: s.total_play_time / 60,
    ConditionKind.COMMENTS_COUNT: lambda s: s.comments_count,
    ConditionKind.RATINGS_COUNT: lambda s: s.ratings_count,
    ConditionKind.FAVORITES_COUNT: lambda s: s.favorites_count,
    ConditionKind.EARLY_PLAYS: lambda s: s.early_plays,
    ConditionKind.NIGHT_PLAYS: lambda s: s.night_plays,
    ConditionKind.CATEGORIES_PLAYED: lambda s: len(s.categories_played),
    ConditionKind.PLATFORMS_PLAYED: lambda s: len(s.platforms_played),
    ConditionKind.LOGIN_STREAK: lambda s: s.login_streak,
}


@dataclass(frozen=True)
class Condition:
    """达成条件：指标 >= 阈值"""
    kind: ConditionKind
    threshold: int

    def is_met(self, stats: StatsSnapshot) -> bool:
        return self.kind.measure(stats) >= self.threshold


@dataclass(frozen=True)
class AchievementDefinition:
    """成就定义"""
    id: str
    name: str
    description: str
    rarity: Rarity
    condition: Condition


ACHIEVEMENTS: tuple[AchievementDefinition, ...] = (
    AchievementDefinition(
        "first_play", "First Play", "Play your first game",
        Rarity.COMMON, Condition(ConditionKind.GAMES_PLAYED, 1),
    ),
    AchievementDefinition(
        "explorer", "Explorer", "Play 10 different games",
        Rarity.COMMON, Condition(ConditionKind.UNIQUE_GAMES_PLAYED, 10),
    ),
    AchievementDefinition(
        "marathon_gamer", "Marathon Gamer", "Play games for 5 hours total",
        Rarity.RARE, Condition(ConditionKind.TOTAL_PLAY_TIME_HOURS, 5),
    ),
    AchievementDefinition(
        "social_butterfly", "Social Butterfly", "Leave 20 comments",
        Rarity.COMMON, Condition(ConditionKind.COMMENTS_COUNT, 20),
    ),
    AchievementDefinition(
        "critic", "Critic", "Rate 50 games",
        Rarity.RARE, Condition(ConditionKind.RATINGS_COUNT, 50),
    ),
    AchievementDefinition(
        "collector", "Collector", "Add 25 games to favorites",
        Rarity.COMMON, Condition(ConditionKind.FAVORITES_COUNT, 25),
    ),
    AchievementDefinition(
        "early_bird", "Early Bird", "Play 5 games before 9 AM",
        Rarity.EPIC, Condition(ConditionKind.EARLY_PLAYS, 5),
    ),
    AchievementDefinition(
        "night_owl", "Night Owl", "Play 5 games after 10 PM",
        Rarity.EPIC, Condition(ConditionKind.NIGHT_PLAYS, 5),
    ),
    AchievementDefinition(
        "category_master", "Category Master", "Play games in 5+ categories",
        Rarity.LEGENDARY, Condition(ConditionKind.CATEGORIES_PLAYED, 5),
    ),
    AchievementDefinition(
        "platform_hopper", "Platform Hopper", "Play games on 3+ platforms",
        Rarity.LEGENDARY, Condition(ConditionKind.PLATFORMS_PLAYED, 3),
    ),
)


def _streak(achievement_id: str, name: str, days: int, rarity: Rarity) -> AchievementDefinition:
    return AchievementDefinition(
        achievement_id, name, f"{days} day login streak",
        rarity, Condition(ConditionKind.LOGIN_STREAK, days),
    )


LOGIN_STREAK_ACHIEVEMENTS: tuple[AchievementDefinition, ...] = (
    _streak("getting_started", "Getting Started", 3, Rarity.COMMON),
    _streak("week_warrior", "Week Warrior", 7, Rarity.RARE),
    _streak("monthly_master", "Monthly Master", 30, Rarity.EPIC),
    _streak("centurion", "Centurion", 100, Rarity.LEGENDARY),
)

_BY_ID: dict[str, AchievementDefinition] = {
    a.id: a for a in ACHIEVEMENTS + LOGIN_STREAK_ACHIEVEMENTS
}


def get_definition(achievement_id: str) -> Optional[AchievementDefinition]:
    """按 ID 查找成就定义"""
    return _BY_ID.get(achievement_id)


def all_definitions() -> tuple[AchievementDefinition, ...]:
    """全部成就定义（行为成就 + 连续登录成就）"""
    return ACHIEVEMENTS + LOGIN_STREAK_ACHIEVEMENTS

"""
数据库模型

所有 SQLAlchemy 模型的统一导出
"""

from gametribe.database.models.user import User
from gametribe.database.models.user_stats import (
    StatSetKind,
    UserStats,
    UserStatsSetMember,
    XPTransaction,
)
from gametribe.database.models.achievement import EarnedAchievement

__all__ = [
    "User",
    "StatSetKind",
    "UserStats",
    "UserStatsSetMember",
    "XPTransaction",
    "EarnedAchievement",
]

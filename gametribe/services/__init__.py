"""
业务服务层
"""

from gametribe.services.achievement_service import AchievementEngine
from gametribe.services.action_tracker import ActionResult, ActionTracker, LoginResult
from gametribe.services.privileges import PrivilegeResolver, Privileges, derive_privileges
from gametribe.services.stats_store import StatsSnapshot, StatsStore

__all__ = [
    "AchievementEngine",
    "ActionTracker",
    "ActionResult",
    "LoginResult",
    "PrivilegeResolver",
    "Privileges",
    "derive_privileges",
    "StatsStore",
    "StatsSnapshot",
]

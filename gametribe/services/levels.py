"""
等级计算

经验值与等级之间的换算，全部为纯函数
"""

import math
from enum import Enum


class LevelTier(str, Enum):
    """等级段位"""
    NOVICE = "Novice"
    GAMER = "Gamer"
    PRO = "Pro"
    MASTER = "Master"
    LEGEND = "Legend"


# (段位上限, 段位)，上限包含在内
_TIER_BOUNDS = (
    (10, LevelTier.NOVICE),
    (25, LevelTier.GAMER),
    (50, LevelTier.PRO),
    (100, LevelTier.MASTER),
)


def xp_for_level(level: int) -> int:
    """达到某等级所需的总经验：100 * level^1.5，1 级为 0"""
    if level <= 1:
        return 0
    return math.floor(100 * level ** 1.5)


def level_from_xp(total_xp: int) -> int:
    """总经验对应的等级：满足 xp_for_level(level) <= total_xp 的最大等级"""
    level = 1
    while xp_for_level(level + 1) <= total_xp:
        level += 1
    return level


def level_tier(level: int) -> LevelTier:
    """等级对应的段位"""
    for upper, tier in _TIER_BOUNDS:
        if level <= upper:
            return tier
    return LevelTier.LEGEND


def level_progress(total_xp: int, level: int) -> dict:
    """
    当前等级内的进度

    Returns:
        current_level_xp / next_level_xp / xp_in_current_level /
        xp_needed_for_next_level / xp_progress（0-100 的百分比）
    """
    current_level_xp = xp_for_level(level)
    next_level_xp = xp_for_level(level + 1)
    xp_in_current_level = total_xp - current_level_xp
    xp_needed = next_level_xp - current_level_xp

    progress = (xp_in_current_level / xp_needed) * 100 if xp_needed > 0 else 0.0

    return {
        "current_level_xp": current_level_xp,
        "next_level_xp": next_level_xp,
        "xp_in_current_level": xp_in_current_level,
        "xp_needed_for_next_level": xp_needed,
        "xp_progress": min(100.0, max(0.0, progress)),
    }

"""
行为追踪测试

经验发放、等级、时段计数、连续天数与失败语义
"""

from datetime import date, datetime, timedelta, timezone
from unittest.mock import patch

import pytest
from sqlalchemy import select
from sqlalchemy.exc import OperationalError

from gametribe.core.exceptions import InvalidInputError, StoreUnavailableError
from gametribe.database.models import XPTransaction
from gametribe.services.action_tracker import (
    ActionTracker,
    StreakTransition,
    streak_transition,
)
from gametribe.services.stats_store import StatsStore


def at(day: int, hour: int = 14, minute: int = 0) -> datetime:
    return datetime(2026, 10, day, hour, minute, tzinfo=timezone.utc)


@pytest.fixture
def tracker(db_session) -> ActionTracker:
    return ActionTracker(db_session, tz=timezone.utc)


def db_down() -> OperationalError:
    return OperationalError("UPDATE user_stats", None, Exception("connection refused"))


# ============ 连续天数迁移 ============

def test_streak_transition():
    today = date(2026, 10, 19)
    assert streak_transition(None, today) is StreakTransition.FIRST
    assert streak_transition(today, today) is StreakTransition.SAME_DAY
    assert streak_transition(today - timedelta(days=1), today) is StreakTransition.CONSECUTIVE
    assert streak_transition(today - timedelta(days=2), today) is StreakTransition.BROKEN


def test_streak_transition_clock_skew_is_same_day():
    today = date(2026, 10, 19)
    assert streak_transition(today + timedelta(days=1), today) is StreakTransition.SAME_DAY


# ============ 游玩 ============

@pytest.mark.asyncio
async def test_first_play(tracker, make_user, db_session):
    """新用户第一次游玩"""
    await make_user("u1")

    result = await tracker.track_game_play("u1", "g1", now=at(19, 14))

    assert result.xp_earned == 10
    assert result.new_total_xp == 10
    assert result.new_level == 1
    assert result.leveled_up is False
    assert result.new_achievements == ["first_play"]
    assert result.achievement_check_failed is False

    stats = await StatsStore(db_session).get("u1")
    assert stats.games_played == 1
    assert stats.unique_games_played == frozenset({"g1"})
    assert stats.total_xp == 10
    assert stats.level == 1
    assert stats.play_streak == 1
    assert stats.last_play_date == date(2026, 10, 19)
    assert stats.early_plays == 0
    assert stats.night_plays == 0


@pytest.mark.asyncio
async def test_play_records_category_platform_and_duration(tracker, make_user, db_session):
    await make_user("u1")

    await tracker.track_game_play(
        "u1", "g1", category_id="puzzle", platform="web", duration_minutes=45, now=at(19)
    )
    await tracker.track_game_play(
        "u1", "g1", category_id="puzzle", platform="android", duration_minutes=15, now=at(19)
    )

    stats = await StatsStore(db_session).get("u1")
    assert stats.games_played == 2
    assert stats.unique_games_played == frozenset({"g1"})
    assert stats.categories_played == frozenset({"puzzle"})
    assert stats.platforms_played == frozenset({"web", "android"})
    assert stats.total_play_time == 60


@pytest.mark.parametrize(
    "hour,minute,early,night",
    [
        (0, 0, 1, 0),
        (8, 59, 1, 0),
        (9, 0, 0, 0),
        (21, 59, 0, 0),
        (22, 0, 0, 1),
        (23, 59, 0, 1),
    ],
)
@pytest.mark.asyncio
async def test_time_of_day_buckets(tracker, make_user, db_session, hour, minute, early, night):
    await make_user("u1")

    await tracker.track_game_play("u1", "g1", now=at(19, hour, minute))

    stats = await StatsStore(db_session).get("u1")
    assert stats.early_plays == early
    assert stats.night_plays == night


@pytest.mark.asyncio
async def test_time_of_day_uses_configured_timezone(make_user, db_session):
    """23:30 UTC 在 UTC+8 是早上 7:30"""
    await make_user("u1")
    tracker = ActionTracker(db_session, tz=timezone(timedelta(hours=8)))

    await tracker.track_game_play("u1", "g1", now=at(19, 23, 30))

    stats = await StatsStore(db_session).get("u1")
    assert stats.early_plays == 1
    assert stats.last_play_date == date(2026, 10, 20)


@pytest.mark.asyncio
async def test_play_streak(tracker, make_user, db_session):
    await make_user("u1")
    store = StatsStore(db_session)

    await tracker.track_game_play("u1", "g1", now=at(19))
    await tracker.track_game_play("u1", "g2", now=at(19, 20))
    assert (await store.get("u1")).play_streak == 1

    await tracker.track_game_play("u1", "g3", now=at(20))
    assert (await store.get("u1")).play_streak == 2

    await tracker.track_game_play("u1", "g4", now=at(23))
    stats = await store.get("u1")
    assert stats.play_streak == 1
    assert stats.last_play_date == date(2026, 10, 23)
    assert stats.games_played == 4


@pytest.mark.asyncio
async def test_play_rejects_invalid_input(tracker, make_user, db_session):
    await make_user("u1")

    with pytest.raises(InvalidInputError):
        await tracker.track_game_play("u1", "", now=at(19))
    with pytest.raises(InvalidInputError):
        await tracker.track_game_play("u1", "g1", duration_minutes=-5, now=at(19))
    with pytest.raises(InvalidInputError):
        await tracker.track_game_play("u1", "g" * 200, now=at(19))

    assert await StatsStore(db_session).get("u1") is None


@pytest.mark.asyncio
async def test_unknown_user_is_rejected_before_mutation(tracker, db_session):
    with pytest.raises(InvalidInputError):
        await tracker.track_rating("ghost", "g1")

    assert await StatsStore(db_session).count() == 0


# ============ 经验与等级 ============

@pytest.mark.asyncio
async def test_rating_below_level_boundary(tracker, make_user, db_session):
    """99 + 5 = 104，仍未达到 2 级的 282"""
    await make_user("u1")
    store = StatsStore(db_session)
    await store.get_or_create("u1")
    await store.add_xp("u1", 99)
    await db_session.commit()

    result = await tracker.track_rating("u1", "g1")

    assert result.xp_earned == 5
    assert result.new_total_xp == 104
    assert result.old_level == 1
    assert result.new_level == 1
    assert result.leveled_up is False
    assert (await store.get("u1")).ratings_count == 1


@pytest.mark.asyncio
async def test_level_up(tracker, make_user, db_session):
    await make_user("u1")
    store = StatsStore(db_session)
    await store.get_or_create("u1")
    await store.add_xp("u1", 280)
    await db_session.commit()

    result = await tracker.track_game_play("u1", "g1", now=at(19))

    assert result.new_total_xp == 290
    assert result.old_level == 1
    assert result.new_level == 2
    assert result.leveled_up is True
    assert (await store.get("u1")).level == 2


@pytest.mark.asyncio
async def test_xp_values_per_action(tracker, make_user, db_session):
    await make_user("u1")

    assert (await tracker.track_game_play("u1", "g1", now=at(19))).xp_earned == 10
    assert (await tracker.track_rating("u1", "g1")).xp_earned == 5
    assert (await tracker.track_comment("u1", "g1")).xp_earned == 3
    assert (await tracker.track_share("u1", "g1")).xp_earned == 5

    favorite = await tracker.track_favorite("u1", "g1")
    assert favorite.xp_earned == 0
    assert favorite.new_total_xp == 23

    stats = await StatsStore(db_session).get("u1")
    assert stats.total_xp == 23
    assert stats.comments_count == 1
    assert stats.ratings_count == 1
    assert stats.shares_count == 1
    assert stats.favorites_count == 1


@pytest.mark.asyncio
async def test_xp_ledger(tracker, make_user, db_session):
    """每次加经验都有流水，收藏不加经验也不记流水"""
    await make_user("u1")

    await tracker.track_game_play("u1", "g1", now=at(19))
    await tracker.track_rating("u1", "g2")
    await tracker.track_favorite("u1", "g3")

    result = await db_session.execute(
        select(XPTransaction)
        .where(XPTransaction.user_id == "u1")
        .order_by(XPTransaction.total_xp)
    )
    ledger = result.scalars().all()
    assert [(t.action, t.xp_amount, t.total_xp, t.game_id) for t in ledger] == [
        ("play_game", 10, 10, "g1"),
        ("rate_game", 5, 15, "g2"),
    ]


# ============ 每日登录 ============

@pytest.mark.asyncio
async def test_same_day_login_is_noop(tracker, make_user, db_session):
    await make_user("u1")

    first = await tracker.track_daily_login("u1", now=at(19, 8))
    second = await tracker.track_daily_login("u1", now=at(19, 21))

    assert first.already_done is False
    assert first.login_streak == 1
    assert second.already_done is True
    assert second.login_streak == first.login_streak

    stats = await StatsStore(db_session).get("u1")
    assert stats.total_xp == 0
    assert stats.login_streak == 1


@pytest.mark.asyncio
async def test_login_streak_and_achievement(tracker, make_user, db_session):
    await make_user("u1")

    day1 = await tracker.track_daily_login("u1", now=at(17))
    day2 = await tracker.track_daily_login("u1", now=at(18))
    day3 = await tracker.track_daily_login("u1", now=at(19))

    assert [day1.login_streak, day2.login_streak, day3.login_streak] == [1, 2, 3]
    assert day2.new_achievements == []
    assert day3.new_achievements == ["getting_started"]

    broken = await tracker.track_daily_login("u1", now=at(21))
    assert broken.login_streak == 1
    assert broken.new_achievements == []


@pytest.mark.asyncio
async def test_login_does_not_check_activity_achievements(tracker, make_user, db_session):
    await make_user("u1")
    store = StatsStore(db_session)
    await store.get_or_create("u1")
    await store.increment("u1", games_played=1)
    await db_session.commit()

    result = await tracker.track_daily_login("u1", now=at(19))

    assert result.new_achievements == []


# ============ 失败语义 ============

@pytest.mark.asyncio
async def test_store_failure_rolls_back_whole_action(tracker, make_user, db_session):
    """加经验失败时计数也不落库"""
    await make_user("u1")

    with patch.object(tracker.store, "add_xp", side_effect=db_down()):
        with pytest.raises(StoreUnavailableError):
            await tracker.track_game_play("u1", "g1", now=at(19))

    assert await StatsStore(db_session).get("u1") is None


@pytest.mark.asyncio
async def test_achievement_failure_keeps_stats(tracker, make_user, db_session):
    """成就检查失败不回滚已提交的统计"""
    await make_user("u1")

    with patch.object(tracker.achievements, "check_all", side_effect=db_down()):
        result = await tracker.track_game_play("u1", "g1", now=at(19))

    assert result.achievement_check_failed is True
    assert result.new_achievements == []
    assert result.new_total_xp == 10

    stats = await StatsStore(db_session).get("u1")
    assert stats.games_played == 1
    assert stats.total_xp == 10

    # 下一次行为会补发漏掉的成就
    retry = await tracker.track_rating("u1", "g1")
    assert retry.new_achievements == ["first_play"]


@pytest.mark.asyncio
async def test_unexpected_achievement_error_keeps_stats(tracker, make_user, db_session):
    """成就检查抛出非数据库异常时同样只标记失败"""
    await make_user("u1")

    with patch.object(tracker.achievements, "check_all", side_effect=RuntimeError("boom")):
        result = await tracker.track_game_play("u1", "g1", now=at(19))

    assert result.achievement_check_failed is True
    assert result.new_achievements == []

    stats = await StatsStore(db_session).get("u1")
    assert stats.games_played == 1
    assert stats.total_xp == 10


@pytest.mark.asyncio
async def test_unexpected_login_achievement_error(tracker, make_user, db_session):
    await make_user("u1")

    with patch.object(
        tracker.achievements, "check_login_streak", side_effect=KeyError("streak")
    ):
        result = await tracker.track_daily_login("u1", now=at(19))

    assert result.already_done is False
    assert result.login_streak == 1
    assert result.achievement_check_failed is True
    assert (await StatsStore(db_session).get("u1")).login_streak == 1


@pytest.mark.asyncio
async def test_login_lost_race_reports_already_done(tracker, make_user, db_session):
    """并发登录已写入今天时，返回 already_done 且不再检查成就"""
    await make_user("u1")
    await tracker.track_daily_login("u1", now=at(18))

    with patch.object(tracker.store, "set_streak", return_value=False), patch.object(
        tracker.achievements, "check_login_streak"
    ) as check:
        result = await tracker.track_daily_login("u1", now=at(19))

    assert result.already_done is True
    assert result.login_streak == 1
    check.assert_not_called()

    stats = await StatsStore(db_session).get("u1")
    assert stats.login_streak == 1
    assert stats.last_login_date == date(2026, 10, 18)


@pytest.mark.asyncio
async def test_get_or_create_missing_row(make_user, db_session):
    await make_user("u1")
    store = StatsStore(db_session)

    with patch.object(store, "get", return_value=None):
        with pytest.raises(StoreUnavailableError):
            await store.get_or_create("u1")

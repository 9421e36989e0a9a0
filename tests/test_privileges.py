"""
特权推导测试
"""

from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError

from gametribe.core.exceptions import PrivilegeLimitError
from gametribe.services.achievement_service import AchievementEngine
from gametribe.services.privileges import (
    DEFAULT_PRIVILEGES,
    PrivilegeResolver,
    check_bio_length,
    check_comment_length,
    check_favorites_capacity,
    derive_privileges,
    download_priority_message,
)
from gametribe.services.stats_store import StatsStore


def test_defaults():
    privileges = derive_privileges(1, [])
    assert privileges == DEFAULT_PRIVILEGES
    assert privileges.favorites_limit == 50
    assert privileges.comment_length_limit == 500
    assert privileges.bio_length_limit == 200
    assert privileges.download_priority == "normal"
    assert privileges.is_featured is False
    assert privileges.level_tier == "Novice"


@pytest.mark.parametrize(
    "achievements,expected",
    [
        (["collector"], 100),
        (["critic"], 200),
        (["collector", "critic"], 200),
        (["critic", "collector"], 200),
    ],
)
def test_favorites_limit_highest_tier_wins(achievements, expected):
    assert derive_privileges(1, achievements).favorites_limit == expected


@pytest.mark.parametrize(
    "achievements,expected",
    [
        (["social_butterfly"], 1000),
        (["critic"], 2000),
        (["social_butterfly", "critic"], 2000),
    ],
)
def test_comment_length_highest_tier_wins(achievements, expected):
    assert derive_privileges(1, achievements).comment_length_limit == expected


@pytest.mark.parametrize(
    "achievements,expected",
    [
        (["social_butterfly"], 500),
        (["explorer"], 1000),
        (["social_butterfly", "explorer"], 1000),
        (["critic"], 200),
    ],
)
def test_bio_length_highest_tier_wins(achievements, expected):
    assert derive_privileges(1, achievements).bio_length_limit == expected


@pytest.mark.parametrize(
    "achievements,expected",
    [
        (["marathon_gamer"], "priority"),
        (["critic"], "instant"),
        (["marathon_gamer", "critic"], "instant"),
    ],
)
def test_download_priority(achievements, expected):
    assert derive_privileges(1, achievements).download_priority == expected


def test_featured():
    assert derive_privileges(1, ["category_master"]).is_featured is True
    assert derive_privileges(1, ["platform_hopper"]).is_featured is True
    assert derive_privileges(1, ["explorer"]).is_featured is False


@pytest.mark.parametrize(
    "level,premium,exclusive,all_premium",
    [
        (49, False, False, False),
        (50, True, False, False),
        (99, True, False, False),
        (100, True, True, False),
        (149, True, True, False),
        (150, True, True, True),
    ],
)
def test_level_gates(level, premium, exclusive, all_premium):
    privileges = derive_privileges(level, [])
    assert privileges.can_access_premium is premium
    assert privileges.can_access_exclusive is exclusive
    assert privileges.can_access_all_premium is all_premium


def test_achievement_list_is_deduplicated():
    privileges = derive_privileges(1, ["critic", "critic", "explorer"])
    assert privileges.achievements == ["critic", "explorer"]


# ============ 限额校验 ============

def test_comment_length_gate():
    check_comment_length(DEFAULT_PRIVILEGES, "x" * 500)

    with pytest.raises(PrivilegeLimitError) as exc_info:
        check_comment_length(DEFAULT_PRIVILEGES, "x" * 501)

    assert exc_info.value.status_code == 403
    assert exc_info.value.limit == 500
    assert "Social Butterfly" in exc_info.value.detail
    assert "Critic" in exc_info.value.detail


def test_comment_length_gate_at_top_tier_has_no_hint():
    privileges = derive_privileges(1, ["critic"])

    with pytest.raises(PrivilegeLimitError) as exc_info:
        check_comment_length(privileges, "x" * 2001)

    assert exc_info.value.detail == "Comment cannot exceed 2000 characters."


def test_bio_length_gate():
    privileges = derive_privileges(1, ["social_butterfly"])
    check_bio_length(privileges, "x" * 500)

    with pytest.raises(PrivilegeLimitError) as exc_info:
        check_bio_length(privileges, "x" * 501)

    assert "Explorer" in exc_info.value.detail
    assert "Social Butterfly" not in exc_info.value.detail


def test_favorites_capacity_gate():
    privileges = derive_privileges(1, ["collector"])
    check_favorites_capacity(privileges, 99)

    with pytest.raises(PrivilegeLimitError) as exc_info:
        check_favorites_capacity(privileges, 100)

    assert exc_info.value.limit == 100
    assert "Critic" in exc_info.value.detail


def test_download_priority_message():
    assert "Instant" in download_priority_message("instant")
    assert "Priority" in download_priority_message("priority")
    assert download_priority_message("normal") == ""


# ============ 解析器 ============

@pytest.mark.asyncio
async def test_resolver_reads_level_and_achievements(make_user, db_session):
    await make_user("u1")
    store = StatsStore(db_session)
    await store.get_or_create("u1")
    await store.add_xp("u1", 400)
    await store.raise_level("u1", 2)
    await store.increment("u1", ratings_count=50)
    await AchievementEngine(db_session, store).check_all("u1")
    await db_session.commit()

    privileges = await PrivilegeResolver(db_session).get_privileges("u1")

    assert privileges.level == 2
    assert privileges.achievements == ["critic"]
    assert privileges.favorites_limit == 200
    assert privileges.download_priority == "instant"


@pytest.mark.asyncio
async def test_resolver_user_without_stats(make_user, db_session):
    await make_user("u1")

    privileges = await PrivilegeResolver(db_session).get_privileges("u1")

    assert privileges == DEFAULT_PRIVILEGES


@pytest.mark.asyncio
async def test_resolver_uses_prefetched_data(make_user, db_session):
    await make_user("u1")
    resolver = PrivilegeResolver(db_session)

    with patch.object(resolver.store, "get") as get, patch.object(
        resolver.achievements, "earned_ids"
    ) as earned_ids:
        stats = await StatsStore(db_session).get_or_create("u1")
        privileges = await resolver.get_privileges(
            "u1", stats=stats, achievement_ids=["explorer"]
        )

    get.assert_not_called()
    earned_ids.assert_not_called()
    assert privileges.bio_length_limit == 1000


@pytest.mark.asyncio
async def test_resolver_falls_back_to_defaults(make_user, db_session):
    await make_user("u1")
    resolver = PrivilegeResolver(db_session)
    error = OperationalError("SELECT", None, Exception("connection refused"))

    with patch.object(resolver.achievements, "earned_ids", side_effect=error):
        privileges = await resolver.get_privileges("u1")

    assert privileges is DEFAULT_PRIVILEGES

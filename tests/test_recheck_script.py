"""
成就补发脚本测试
"""

import importlib.util
from pathlib import Path

import pytest

from gametribe.services.achievement_service import AchievementEngine
from gametribe.services.stats_store import StatsStore

SCRIPT = Path(__file__).parent.parent / "scripts" / "recheck_achievements.py"


def load_script():
    spec = importlib.util.spec_from_file_location("recheck_achievements", SCRIPT)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


@pytest.mark.asyncio
async def test_recheck_dry_run_then_live(make_user, db_session, session_maker):
    await make_user("u1")
    await make_user("u2")
    store = StatsStore(db_session)
    await store.get_or_create("u1")
    await store.increment("u1", games_played=1, comments_count=20)
    await store.get_or_create("u2")
    await db_session.commit()

    script = load_script()

    dry = await script.recheck_achievements(dry_run=True, session_factory=session_maker)
    assert dry["status"] == "dry_run"
    assert dry["checked"] == 2
    assert dry["granted"] == {"u1": ["first_play", "social_butterfly"]}
    assert await AchievementEngine(db_session).earned_ids("u1") == set()

    live = await script.recheck_achievements(session_factory=session_maker)
    assert live["granted"] == {"u1": ["first_play", "social_butterfly"]}
    assert await AchievementEngine(db_session).earned_ids("u1") == {
        "first_play",
        "social_butterfly",
    }

    again = await script.recheck_achievements(user_id="u1", session_factory=session_maker)
    assert again["checked"] == 1
    assert again["granted"] == {}

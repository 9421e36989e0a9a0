#!/usr/bin/env python3
"""
成就补发脚本

对所有用户（或指定用户）重新执行成就检查，补发规则调整或检查失败后漏发的成就。
颁发是幂等的，重复运行不会重复颁发

使用方式:
    python scripts/recheck_achievements.py --dry-run
    python scripts/recheck_achievements.py
    python scripts/recheck_achievements.py --user-id <uid>
"""

import argparse
import asyncio
from typing import Optional

import structlog
from sqlalchemy.exc import SQLAlchemyError

from gametribe.core.logging import setup_logging
from gametribe.database import async_session_maker, close_db
from gametribe.services.achievement_service import AchievementEngine
from gametribe.services.stats_store import StatsStore

logger = structlog.get_logger(__name__)


async def recheck_achievements(
    dry_run: bool = False,
    user_id: Optional[str] = None,
    session_factory=async_session_maker,
) -> dict:
    """
    重新检查成就

    Args:
        dry_run: 只列出将会颁发的成就，不写入
        user_id: 只检查该用户（可选，不指定则检查所有）
        session_factory: 会话工厂

    Returns:
        检查结果
    """
    async with session_factory() as session:
        store = StatsStore(session)
        user_ids = [user_id] if user_id else await store.all_user_ids()

    granted: dict[str, list[str]] = {}
    failed: list[str] = []

    for uid in user_ids:
        # 每个用户独立会话，单个用户失败不影响其他用户
        async with session_factory() as session:
            engine = AchievementEngine(session)
            try:
                if dry_run:
                    unlocked = await engine.pending(uid)
                else:
                    unlocked = await engine.check_all(uid)
                    unlocked += await engine.check_login_streak(uid)
                    await session.commit()
            except SQLAlchemyError as e:
                await session.rollback()
                logger.error("recheck_achievements_user_failed", user_id=uid, error=str(e))
                failed.append(uid)
                continue

        if unlocked:
            granted[uid] = [a.id for a in unlocked]

    logger.info(
        "recheck_achievements_complete",
        dry_run=dry_run,
        users=len(user_ids),
        users_with_new=len(granted),
        failed=len(failed),
    )

    return {
        "status": "dry_run" if dry_run else "success",
        "checked": len(user_ids),
        "granted": granted,
        "failed": failed,
    }


async def main():
    parser = argparse.ArgumentParser(description="重新检查并补发成就")
    parser.add_argument("--dry-run", action="store_true", help="只列出，不颁发")
    parser.add_argument("--user-id", type=str, help="用户 ID（可选）")

    args = parser.parse_args()

    setup_logging()

    print("\n🏆 成就补发")
    print(f"   模式: {'DRY RUN' if args.dry_run else 'LIVE'}")
    print(f"   用户: {args.user_id or 'all'}")
    print()

    try:
        result = await recheck_achievements(dry_run=args.dry_run, user_id=args.user_id)
    finally:
        await close_db()

    label = "待颁发" if args.dry_run else "已颁发"
    print(f"📊 已检查用户: {result['checked']}")
    for uid, achievement_ids in result["granted"].items():
        print(f"  - {uid} | {label}: {', '.join(achievement_ids)}")
    if result["failed"]:
        print(f"⚠️  检查失败: {', '.join(result['failed'])}")


if __name__ == "__main__":
    asyncio.run(main())

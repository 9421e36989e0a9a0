"""
健康检查 API
"""

import structlog
from fastapi import APIRouter
from sqlalchemy.exc import SQLAlchemyError

from gametribe import __version__
from gametribe.database import ping_db

logger = structlog.get_logger(__name__)

router = APIRouter()


async def _database_healthy() -> bool:
    try:
        return await ping_db()
    except (SQLAlchemyError, OSError) as e:
        logger.warning("database_ping_failed", error=str(e))
        return False


@router.get("")
async def health_check():
    """
    健康检查

    返回服务和数据库状态
    """
    db_healthy = await _database_healthy()

    return {
        "status": "healthy" if db_healthy else "unhealthy",
        "service": "gamification",
        "version": __version__,
        "database": "ok" if db_healthy else "unavailable",
    }


@router.get("/live")
async def liveness_check():
    """存活检查"""
    return {"alive": True}

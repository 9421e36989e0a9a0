"""
数据库模块

提供 SQLAlchemy 2.0 异步数据库支持
"""

from gametribe.database.base import Base, TimestampMixin
from gametribe.database.engine import (
    async_session_maker,
    close_db,
    engine,
    get_db,
    ping_db,
)

__all__ = [
    # Base
    "Base",
    "TimestampMixin",
    # Engine
    "engine",
    "async_session_maker",
    "get_db",
    "ping_db",
    "close_db",
]

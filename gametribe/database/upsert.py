"""
方言相关的 INSERT ... ON CONFLICT DO NOTHING

PostgreSQL（生产）和 SQLite（测试）都支持，但构造器位于各自的方言模块
"""

from typing import Sequence

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql.dml import Insert


def insert_ignore(session: AsyncSession, model, index_elements: Sequence[str]) -> Insert:
    """
    构造"不存在才插入"语句

    Args:
        session: 当前会话（用于判断方言）
        model: ORM 模型类
        index_elements: 唯一约束涉及的列名
    """
    dialect = session.get_bind().dialect.name

    if dialect == "postgresql":
        stmt = postgresql.insert(model)
    elif dialect == "sqlite":
        stmt = sqlite.insert(model)
    else:
        raise NotImplementedError(f"insert_ignore 不支持方言: {dialect}")

    return stmt.on_conflict_do_nothing(index_elements=list(index_elements))

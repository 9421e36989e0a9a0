"""
已获得成就模型

成就定义是代码内的静态目录（见 services/achievement_registry.py），
这里只保存用户 × 成就的获得记录，只追加不修改
"""

from datetime import datetime
from uuid import uuid4

from sqlalchemy import DateTime, ForeignKey, Index, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from gametribe.database.base import Base


class EarnedAchievement(Base):
    """用户成就记录表"""

    __tablename__ = "earned_achievements"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))
    user_id: Mapped[str] = mapped_column(
        String(128), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    achievement_id: Mapped[str] = mapped_column(String(50), nullable=False)

    # 获得时的定义快照
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    rarity: Mapped[str] = mapped_column(String(20), nullable=False)

    earned_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (
        Index("ix_earned_achievements_user", "user_id"),
        Index("ix_earned_achievements_unique", "user_id", "achievement_id", unique=True),
        Index("ix_earned_achievements_earned_at", "earned_at"),
    )

    def __repr__(self) -> str:
        return f"<EarnedAchievement(user_id={self.user_id}, achievement_id={self.achievement_id})>"

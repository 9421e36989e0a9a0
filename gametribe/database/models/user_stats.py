"""
用户成长统计模型

包括：
- UserStats: 每个用户一行的计数器与连续天数
- UserStatsSetMember: 只增不减的集合字段（玩过的游戏/分类/平台）
- XPTransaction: 经验值流水
"""

from datetime import date, datetime
from typing import TYPE_CHECKING, Optional
from uuid import uuid4

from sqlalchemy import (
    JSON,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from gametribe.database.base import Base, TimestampMixin

if TYPE_CHECKING:
    from gametribe.database.models.user import User


class StatSetKind:
    """集合字段类型常量"""
    GAME = "game"          # uniqueGamesPlayed
    CATEGORY = "category"  # categoriesPlayed
    PLATFORM = "platform"  # platformsPlayed


class UserStats(Base, TimestampMixin):
    """用户成长统计表"""

    __tablename__ = "user_stats"

    user_id: Mapped[str] = mapped_column(
        String(128), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )

    # 经验与等级（level 始终由 total_xp 推导）
    total_xp: Mapped[int] = mapped_column(Integer, default=0, server_default="0", index=True)
    level: Mapped[int] = mapped_column(Integer, default=1, server_default="1")

    # 行为计数
    games_played: Mapped[int] = mapped_column(Integer, default=0, server_default="0")
    total_play_time: Mapped[int] = mapped_column(
        Integer, default=0, server_default="0", comment="总游玩时长（分钟）"
    )
    comments_count: Mapped[int] = mapped_column(Integer, default=0, server_default="0")
    ratings_count: Mapped[int] = mapped_column(Integer, default=0, server_default="0")
    favorites_count: Mapped[int] = mapped_column(Integer, default=0, server_default="0")
    shares_count: Mapped[int] = mapped_column(Integer, default=0, server_default="0")
    early_plays: Mapped[int] = mapped_column(
        Integer, default=0, server_default="0", comment="9 点前游玩次数"
    )
    night_plays: Mapped[int] = mapped_column(
        Integer, default=0, server_default="0", comment="22 点后游玩次数"
    )

    # 连续天数
    login_streak: Mapped[int] = mapped_column(Integer, default=0, server_default="0")
    play_streak: Mapped[int] = mapped_column(Integer, default=0, server_default="0")
    last_login_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    last_play_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    user: Mapped["User"] = relationship("User", back_populates="stats")

    def __repr__(self) -> str:
        return f"<UserStats(user_id={self.user_id}, total_xp={self.total_xp}, level={self.level})>"


class UserStatsSetMember(Base):
    """集合字段成员表，唯一约束保证"加入集合"幂等"""

    __tablename__ = "user_stats_set_members"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(
        String(128), ForeignKey("user_stats.user_id", ondelete="CASCADE"), nullable=False
    )
    kind: Mapped[str] = mapped_column(String(20), nullable=False, comment="game/category/platform")
    value: Mapped[str] = mapped_column(String(128), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (
        Index("ix_user_stats_set_members_unique", "user_id", "kind", "value", unique=True),
        Index("ix_user_stats_set_members_user_kind", "user_id", "kind"),
    )


class XPTransaction(Base):
    """经验值流水（只追加）"""

    __tablename__ = "xp_transactions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))
    user_id: Mapped[str] = mapped_column(
        String(128), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    xp_amount: Mapped[int] = mapped_column(Integer, nullable=False)
    action: Mapped[str] = mapped_column(String(50), nullable=False)
    game_id: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    details: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    total_xp: Mapped[int] = mapped_column(Integer, nullable=False, comment="入账后的总经验")
    level: Mapped[int] = mapped_column(Integer, nullable=False, comment="入账后的等级")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (
        Index("ix_xp_transactions_user_created", "user_id", "created_at"),
    )

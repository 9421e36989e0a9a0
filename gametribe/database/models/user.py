"""
用户模型

账号由外部身份服务创建，这里只保存排行榜和资料展示需要的字段；
主键直接使用身份服务的 uid
"""

from typing import TYPE_CHECKING, Optional

from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from gametribe.database.base import Base, TimestampMixin

if TYPE_CHECKING:
    from gametribe.database.models.user_stats import UserStats


class User(Base, TimestampMixin):
    """用户实体"""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(128), primary_key=True)

    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True, index=True)
    display_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    gamer_tag: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    photo_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    bio: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    stats: Mapped[Optional["UserStats"]] = relationship(
        "UserStats", back_populates="user", uselist=False
    )

    @property
    def public_name(self) -> str:
        """排行榜展示名：gamer tag > 昵称 > 邮箱前缀 > Anonymous"""
        if self.gamer_tag:
            return self.gamer_tag
        if self.display_name:
            return self.display_name
        if self.email:
            return self.email.split("@")[0]
        return "Anonymous"

    def __repr__(self) -> str:
        return f"<User(id={self.id}, gamer_tag={self.gamer_tag})>"

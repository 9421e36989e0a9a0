"""
通用依赖

数据库会话与当前用户。用户身份来自身份服务签发的 Bearer 令牌，
本服务只读取其中的 sub，不做登录
"""

from typing import Annotated, Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from gametribe.core.exceptions import AuthenticationError
from gametribe.core.security import decode_token
from gametribe.database import get_db

bearer_scheme = HTTPBearer(auto_error=False)


async def get_optional_user_id(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(bearer_scheme)],
) -> Optional[str]:
    """有令牌则解析出用户 ID，无令牌返回 None，令牌无效直接 401"""
    if credentials is None:
        return None

    payload = decode_token(credentials.credentials)
    if not payload or payload.get("type") != "access":
        raise AuthenticationError("Invalid token")

    user_id = payload.get("sub")
    if not user_id:
        raise AuthenticationError("Invalid token")
    return user_id


async def get_current_user_id(
    user_id: Annotated[Optional[str], Depends(get_optional_user_id)],
) -> str:
    """必须登录"""
    if not user_id:
        raise AuthenticationError()
    return user_id


DbSession = Annotated[AsyncSession, Depends(get_db)]
CurrentUserId = Annotated[str, Depends(get_current_user_id)]
OptionalUserId = Annotated[Optional[str], Depends(get_optional_user_id)]

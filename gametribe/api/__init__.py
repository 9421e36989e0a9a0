"""
API 路由模块

统一注册所有 API 路由
"""

from fastapi import APIRouter

from gametribe.api.v1 import gamification, health

router = APIRouter()

# 健康检查
router.include_router(health.router, prefix="/health", tags=["健康检查"])

# 成长体系
router.include_router(gamification.router, prefix="/v1")

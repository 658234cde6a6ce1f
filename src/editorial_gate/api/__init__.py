"""
API 路由模块
"""
from fastapi import APIRouter
from .analysis import router as analysis_router
from .articles import router as articles_router
from .comments import router as comments_router
from .revisions import router as revisions_router

# 创建主路由
api_router = APIRouter(prefix="/api")

# 注册子路由
api_router.include_router(analysis_router)
api_router.include_router(articles_router)
api_router.include_router(comments_router)
api_router.include_router(revisions_router)

__all__ = ["api_router"]

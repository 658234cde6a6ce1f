"""
FastAPI 应用入口
"""
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from editorial_gate.core import setup_logging, get_settings, get_logger
from editorial_gate.core.database import init_db
from editorial_gate.api import api_router

# 初始化日志
settings = get_settings()
setup_logging(settings.log_level)

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """应用生命周期管理"""
    # 启动时执行
    init_db()
    logger.info("🚀 编辑质量门禁 API 启动中...")
    yield
    # 关闭时执行
    logger.info("👋 编辑质量门禁 API 关闭")


# 创建 FastAPI 应用
app = FastAPI(
    title="编辑质量门禁 API",
    description="文章质量评分、链接合规、版本对比与 AI 修订审批服务",
    version="0.1.0",
    debug=settings.debug,
    lifespan=lifespan,
)

# CORS 中间件
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# 注册 API 路由
app.include_router(api_router)


@app.get("/")
async def root():
    """健康检查"""
    return {"status": "ok", "message": "编辑质量门禁 API 运行中"}


@app.get("/health")
async def health():
    """健康检查"""
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn

    logger.info(f"启动服务: http://{settings.api_host}:{settings.api_port}")
    uvicorn.run(
        "editorial_gate.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug,
    )

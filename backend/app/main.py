"""FastAPI应用主文件.

Review note:
- 启动时建表；未配置 OPENAI/EXA key 时服务照常启动，助手在调用时降级。
"""
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
import logging
import os

from app.config import settings
from app.database import init_db

logger = logging.getLogger("uvicorn.error")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """应用生命周期管理"""
    # 启动时执行
    logger.info("启动DIY项目助手后端...")

    # sqlite 文件所在目录
    os.makedirs("data", exist_ok=True)

    # 初始化数据库
    await init_db()

    logger.info("数据库初始化完成")
    if not settings.OPENAI_API_KEY:
        logger.warning("OPENAI_API_KEY 未配置，助手回复将走降级逻辑")
    if not settings.search_enabled:
        logger.warning("EXA_API_KEY 未配置，网页资源搜索不可用")
    logger.info("API文档: http://0.0.0.0:8000/docs")

    yield

    # 关闭时执行
    logger.info("关闭DIY项目助手后端...")


# 创建FastAPI应用
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="DIY项目助手后端API",
    lifespan=lifespan,
)

# 配置CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/")
async def root():
    """根路径"""
    return {
        "message": "欢迎使用DIY项目助手API",
        "version": settings.APP_VERSION,
        "docs": "/docs"
    }


@app.get("/health")
async def health_check():
    """健康检查"""
    return {
        "status": "healthy",
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION
    }


# 导入并注册路由
from app.api.v1 import ai
app.include_router(ai.router, prefix="/api/v1", tags=["ai"])


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True
    )

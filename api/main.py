"""
ApertureAgent FastAPI 服务入口

提供 REST API 和 WebSocket 接口
"""
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config.paths import init_paths

PROJECT_ROOT = Path(__file__).parent.parent.resolve()

# 初始化路径配置
paths = init_paths(PROJECT_ROOT)
paths.ensure_directories()

from api.routes import chat, guides, settings
from utils.logger import logger

logger.set_file_logging(True, str(paths.logs_dir))

API_VERSION = "0.1.0"


def create_app() -> FastAPI:
    """
    创建 FastAPI 应用并注册路由
    """
    application = FastAPI(
        title="ApertureAgent API",
        description="ApertureAgent 云端文件助手 API 服务",
        version=API_VERSION,
    )

    # CORS 配置
    application.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:5173", "http://localhost:3000", "http://127.0.0.1:5173"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # 注册路由
    application.include_router(chat.router, prefix="/api", tags=["Chat"])
    application.include_router(guides.router, prefix="/api", tags=["Guides"])
    application.include_router(settings.router, prefix="/api", tags=["Settings"])

    @application.get("/health")
    async def health_check():
        """健康检查"""
        return {"status": "healthy", "version": API_VERSION}

    return application


app = create_app()
logger.info("✅ ApertureAgent API 已就绪")


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "api.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True
    )

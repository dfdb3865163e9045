"""
FastAPI应用入口
"""
from dotenv import load_dotenv
from pathlib import Path
import os
import logging

# 加载环境变量 - 优先从根目录加载，回退到当前目录
root_env = Path(__file__).parent.parent.parent / ".env"
if root_env.exists():
    load_dotenv(root_env)
else:
    load_dotenv()

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from lingo.api import progress, admin
from lingo.core.config import get_progress_config


def _get_cors_config() -> tuple[list[str], str | None]:
    """
    获取 CORS 配置

    Returns:
        (allow_origins, allow_origin_regex)
        - 生产环境：使用精确匹配的 origins 列表
        - 开发环境：使用正则匹配本地端口，方便本地开发
    """
    origins_str = os.getenv("ALLOWED_ORIGINS", "")
    if origins_str:
        origins = [origin.strip() for origin in origins_str.split(",") if origin.strip()]
        if origins:
            return origins, None

    # 开发环境：使用正则匹配所有本地端口
    if os.getenv("DEV_MODE", "false").lower() == "true":
        return [], r"http://(localhost|127\.0\.0\.1)(:\d+)?"

    # 非开发环境且未配置 ALLOWED_ORIGINS：拒绝所有跨域
    logger.warning("未配置 ALLOWED_ORIGINS 且非开发模式，CORS 将拒绝所有跨域请求")
    return [], None


# 启动时校验进度配置，配置错误直接失败
progress_config = get_progress_config()
logger.info(
    f"进度引擎配置: timezone={progress_config.timezone}, "
    f"lives={progress_config.default_lives}/{progress_config.max_lives}"
)

app = FastAPI(
    title="Lingo Progress API",
    description="Language learning progress & gamification engine",
    version="0.1.0"
)

# CORS配置 - 从环境变量读取允许的源
allow_origins, allow_origin_regex = _get_cors_config()
logger.info(f"CORS 配置: origins={allow_origins}, regex={allow_origin_regex}")

app.add_middleware(
    CORSMiddleware,
    allow_origins=allow_origins,
    allow_origin_regex=allow_origin_regex,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# 包含所有路由
app.include_router(progress.router, prefix="/api", tags=["学习进度"])
app.include_router(admin.router, prefix="/api", tags=["Admin"])


@app.get("/")
async def root():
    """根路径"""
    return {"message": "Lingo Progress API", "docs": "/docs"}


@app.get("/health")
async def health():
    """健康检查"""
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)

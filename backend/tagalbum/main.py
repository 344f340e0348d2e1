import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from tagalbum.core.config import Settings, get_settings
from tagalbum.core.exceptions import ErrorKind, TagAlbumError
from tagalbum.core.logging import configure_logging
from tagalbum.db.database import create_engine, create_session_factory, create_tables
from tagalbum.routers import images

logger = logging.getLogger(__name__)

FILES_MOUNT = "files"

STATUS_BY_KIND = {
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.INVALID_INPUT: 400,
    ErrorKind.STORE: 500,
    ErrorKind.COLLABORATOR: 502,
    ErrorKind.CONFIGURATION: 500,
}


def status_for(exc: TagAlbumError) -> int:
    status_code = getattr(exc, "status_code", None)
    if status_code is not None:
        return status_code
    return STATUS_BY_KIND[exc.kind]


async def handle_tagalbum_error(request: Request, exc: TagAlbumError):
    status_code = status_for(exc)
    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=status_code, content=exc.to_dict())


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    # --- Lifespan (生命周期) 定义 ---
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # 1. 启动时执行 (Startup)
        # 配置缺失时在这里抛出 ConfigurationError，而不是等到处理请求时
        app_settings = settings or get_settings()
        configure_logging(app_settings.LOG_LEVEL)
        app.state.settings = app_settings

        logger.info("正在启动数据库连接...")
        engine = create_engine(app_settings.DATABASE_URL, echo=app_settings.SQL_ECHO)
        # 开发模式下自动创建表
        await create_tables(engine)
        app.state.session_factory = create_session_factory(engine)
        logger.info("数据库连接成功，表结构已同步。")

        # 挂载上传的图片（确保目录存在）；同一个 app 多次启动时只挂载一次
        os.makedirs(app_settings.UPLOAD_DIR, exist_ok=True)
        if not any(getattr(route, "name", None) == FILES_MOUNT for route in app.routes):
            app.mount(
                app_settings.FILES_ROUTE,
                StaticFiles(directory=app_settings.UPLOAD_DIR),
                name=FILES_MOUNT,
            )

        yield  # 服务运行期间，代码会停在这里

        # 2. 关闭时执行 (Shutdown)
        logger.info("正在关闭数据库连接...")
        await engine.dispose()
        logger.info("数据库连接已关闭。")

    # --- 初始化 App ---
    app = FastAPI(
        title=settings.PROJECT_NAME if settings else "TagAlbum",
        lifespan=lifespan,
    )
    app.add_exception_handler(TagAlbumError, handle_tagalbum_error)

    # 注册路由
    app.include_router(images.router, tags=["Images"])

    @app.get("/")
    def read_root():
        return {"message": "Welcome to TagAlbum API"}

    return app


app = create_app()

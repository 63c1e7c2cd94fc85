"""FastAPI 应用主文件

app 创建 + lifespan 管理：Store 初始化/关闭 + 墓碑压缩器启动/终止 + 路由注册。
"""

import asyncio
import sqlite3
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from starlette.middleware.gzip import GZipMiddleware
from todolist.core.compaction import BatchCompactor
from todolist.core.config import get_db_path, load_compaction_config
from todolist.core.exceptions import ShutdownFlushError
from todolist.core.store import create_memory_store_group, create_store_group

from .auth.session import SessionError, SessionSigner
from .config import load_session_config
from .middleware.gzip_mw import GzipRequestMiddleware
from .middleware.logging_config import setup_logfire, setup_logging
from .middleware.logging_mw import LoggingMiddleware
from .middleware.session_mw import SessionRefreshMiddleware
from .middleware.trace_mw import TraceMiddleware
from .responses import error_response
from .routes import health, tasks, users

log = structlog.get_logger()


async def _open_store_group(backend: str, call_timeout_s: float):
    """按配置创建 Store；SQLite 不可用时降级为内存后端"""
    if backend == "memory":
        log.info("store_initialized", backend="memory")
        return create_memory_store_group()

    db_path = get_db_path()
    try:
        store_group = await create_store_group(db_path, call_timeout_s)
    except (OSError, sqlite3.Error) as e:
        log.warning(
            "sqlite_unavailable_fallback_to_memory",
            db_path=db_path,
            error=str(e),
        )
        return create_memory_store_group()

    log.info("store_initialized", backend="sqlite", db_path=db_path)
    return store_group


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """应用生命周期管理

    启动：初始化 Store，启动墓碑压缩器。
    关闭：置取消信号，stop() 做最后一次压缩，再关闭数据库连接。
    """
    config = load_compaction_config()
    store_group = await _open_store_group(config.backend, config.store_call_timeout_s)
    app.state.store_group = store_group

    shutdown_event = asyncio.Event()
    compactor = BatchCompactor.from_config(
        store_group.task_store, config, cancel_event=shutdown_event
    )
    compactor.start()
    app.state.shutdown_event = shutdown_event
    app.state.compactor = compactor

    try:
        yield
    finally:
        shutdown_event.set()
        try:
            purged = await compactor.stop()
            log.info("shutdown_flush_completed", purged=purged)
        except ShutdownFlushError as e:
            log.error("shutdown_flush_failed", error=str(e))
        finally:
            await store_group.close()


async def session_error_handler(request: Request, exc: SessionError):
    """会话校验失败统一返回 401"""
    log.info("session_rejected", reason=str(exc), error_type=type(exc).__name__)
    return error_response(401, "UNAUTHORIZED", "authentication required")


def create_app() -> FastAPI:
    """创建 FastAPI 应用实例"""
    app = FastAPI(
        title="TodoList Gateway",
        version="0.1.0",
        description="任务/用户管理 API（软删除 + 批量压缩）",
        lifespan=lifespan,
    )

    app.state.session_signer = SessionSigner(load_session_config())

    # 注册中间件（由内到外：请求解压 -> 续签 Cookie -> Trace -> Logging -> 响应压缩）
    app.add_middleware(GzipRequestMiddleware)
    app.add_middleware(SessionRefreshMiddleware)
    app.add_middleware(TraceMiddleware)
    app.add_middleware(LoggingMiddleware)
    app.add_middleware(GZipMiddleware, minimum_size=500)

    app.add_exception_handler(SessionError, session_error_handler)

    # 初始化日志
    setup_logging()
    setup_logfire(app)

    # 注册路由
    app.include_router(tasks.router, tags=["tasks"])
    app.include_router(users.router, tags=["users"])
    app.include_router(health.router, tags=["health"])

    return app


# 默认 app 实例（uvicorn 入口）
app = create_app()

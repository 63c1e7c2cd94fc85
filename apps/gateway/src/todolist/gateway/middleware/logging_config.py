"""日志初始化

TODOLIST_LOG_FORMAT=json 时输出结构化 JSON，否则使用控制台渲染。
TODOLIST_LOG_LEVEL 控制根 logger 级别；第三方库的调试日志统一压到 WARNING。
Logfire 由 LOGFIRE_SEND_TO_LOGFIRE 控制，必须拿到 app 实例才能挂载 FastAPI 埋点。
"""

import logging
import os

import structlog
from fastapi import FastAPI

_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

# 这些库在 DEBUG 下会逐条打印 SQL / 连接事件
_NOISY_LOGGERS = ("aiosqlite", "asyncio", "httpx", "httpcore")


def _shared_processors() -> list[structlog.types.Processor]:
    """structlog 与标准库 logging 共用的前置处理器"""
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]


def _resolve_level(raw: str) -> tuple[int, bool]:
    name = raw.strip().upper()
    if name in _LEVELS:
        return logging.getLevelName(name), True
    return logging.INFO, False


def setup_logging() -> None:
    """配置 structlog + 根 logger，可重复调用（每次替换 handler）"""
    log_format = os.environ.get("TODOLIST_LOG_FORMAT", "dev").strip().lower()
    raw_level = os.environ.get("TODOLIST_LOG_LEVEL", "INFO")
    level, level_ok = _resolve_level(raw_level)

    shared = _shared_processors()
    if log_format == "json":
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer(
            ensure_ascii=False
        )
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[*shared, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler()
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                renderer,
            ],
            foreign_pre_chain=shared,
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    if not level_ok:
        structlog.get_logger().warning(
            "invalid_log_level",
            value=raw_level,
            fallback="INFO",
        )


def setup_logfire(app: FastAPI) -> bool:
    """按需启用 Logfire 并给 app 挂 FastAPI 埋点

    返回是否已启用。未安装 logfire 或初始化失败时只记录告警，服务照常运行。
    """
    if os.environ.get("LOGFIRE_SEND_TO_LOGFIRE", "false").strip().lower() != "true":
        return False

    try:
        import logfire
    except ImportError:
        structlog.get_logger().warning(
            "logfire_not_installed",
            hint="pip install 'todolist[observability]'",
        )
        return False

    try:
        logfire.configure()
        logfire.instrument_fastapi(app)
    except Exception as e:
        structlog.get_logger().warning(
            "logfire_init_failed",
            error_type=type(e).__name__,
            error=str(e),
        )
        return False

    structlog.get_logger().info("logfire_enabled")
    return True

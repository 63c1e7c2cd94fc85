"""配置模块 -- 可通过环境变量或 JSON 配置文件覆盖

优先级：环境变量 > 配置文件（TODOLIST_CONFIG_FILE）> 默认值。
包含数据库路径、存储后端、压缩（compaction）调度参数等。
"""

import json
import os
from pathlib import Path
from typing import Any, Literal

import structlog
from pydantic import BaseModel, Field, ValidationError

log = structlog.get_logger()


def _get_base_dir() -> Path:
    """获取项目 data 基础目录"""
    return Path(os.environ.get("TODOLIST_DATA_DIR", "data"))


def get_db_path() -> str:
    """获取 SQLite 数据库路径"""
    return os.environ.get(
        "TODOLIST_DB_PATH",
        str(_get_base_dir() / "sqlite" / "todolist.db"),
    )


def get_store_backend() -> str:
    """获取存储后端：sqlite（默认）或 memory"""
    return os.environ.get("TODOLIST_STORE_BACKEND", "sqlite").lower()


def load_config_file(path: str | None = None) -> dict[str, Any]:
    """读取 JSON 配置文件

    文件缺失或格式错误时返回空字典，不阻塞启动。
    """
    config_path = path or os.environ.get("TODOLIST_CONFIG_FILE", "")
    if not config_path:
        return {}

    try:
        data = json.loads(Path(config_path).read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        log.warning("config_file_unreadable", path=config_path, error=str(e))
        return {}

    if not isinstance(data, dict):
        log.warning("config_file_not_object", path=config_path)
        return {}
    return data


def _read_number(env_var: str, cast: type, default: float) -> Any:
    """读取数值型环境变量，非法值记录告警并回退默认值"""
    val = os.environ.get(env_var)
    if not val:
        return None
    try:
        return cast(val)
    except ValueError:
        log.warning(
            "invalid_numeric_config",
            env_var=env_var,
            value=val,
            fallback=default,
        )
        return None


# 每次 Store 调用的超时（秒）
STORE_CALL_TIMEOUT_S: float = 5.0


class CompactionConfig(BaseModel):
    """墓碑压缩配置

    环境变量:
        TODOLIST_COMPACTION_CAPACITY: 通知队列容量（饱和即触发压缩）
        TODOLIST_COMPACTION_INTERVAL_S: 检查周期（秒）
        TODOLIST_STORE_CALL_TIMEOUT_S: 单次 Store 调用超时（秒）
    """

    capacity: int = Field(default=10, ge=1, description="通知队列容量")
    interval_s: float = Field(default=2.0, gt=0, description="tick 周期（秒）")
    store_call_timeout_s: float = Field(
        default=STORE_CALL_TIMEOUT_S,
        gt=0,
        description="单次 Store 调用超时（秒）",
    )
    backend: Literal["sqlite", "memory"] = Field(
        default="sqlite",
        description="存储后端",
    )


def load_compaction_config(config_path: str | None = None) -> CompactionConfig:
    """加载压缩配置（环境变量 > 配置文件 > 默认值）

    Returns:
        CompactionConfig 实例
    """
    file_cfg = load_config_file(config_path)
    kwargs: dict = {}

    for field in ("capacity", "interval_s", "store_call_timeout_s", "backend"):
        if field in file_cfg:
            kwargs[field] = file_cfg[field]

    if (val := _read_number("TODOLIST_COMPACTION_CAPACITY", int, 10)) is not None:
        kwargs["capacity"] = val

    if (val := _read_number("TODOLIST_COMPACTION_INTERVAL_S", float, 2.0)) is not None:
        kwargs["interval_s"] = val

    if (
        val := _read_number("TODOLIST_STORE_CALL_TIMEOUT_S", float, STORE_CALL_TIMEOUT_S)
    ) is not None:
        kwargs["store_call_timeout_s"] = val

    if os.environ.get("TODOLIST_STORE_BACKEND"):
        kwargs["backend"] = get_store_backend()

    try:
        return CompactionConfig(**kwargs)
    except ValidationError as e:
        # 越界值（如 capacity=0）逐项回退默认值
        invalid = {err["loc"][0] for err in e.errors() if err["loc"]}
        log.warning(
            "invalid_compaction_config",
            fields=sorted(str(f) for f in invalid),
        )
        return CompactionConfig(
            **{k: v for k, v in kwargs.items() if k not in invalid}
        )

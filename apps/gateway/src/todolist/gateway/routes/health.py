"""健康检查路由

GET /health: Liveness 检查，永远返回 200。
GET /ready: Readiness 检查，包含存储连通性与墓碑压缩器状态。
"""

import structlog
from fastapi import APIRouter, Request
from starlette.responses import JSONResponse
from todolist.core.compaction import CompactorState

log = structlog.get_logger()

router = APIRouter()


@router.get("/health")
async def health():
    """Liveness 检查 -- 永远返回 200"""
    return {"status": "ok"}


@router.get("/ready")
async def ready(request: Request):
    """Readiness 检查 -- 验证核心依赖可用性

    检查项：
    1. store: 存储后端连通性（内存后端恒为 ok）
    2. compactor: 压缩器是否运行、队列长度与容量
    3. tombstones_pending: 等待物理删除的墓碑行数
    """
    checks: dict = {}
    all_ok = True

    # 1. 存储连通性检查
    store_group = request.app.state.store_group
    checks["backend"] = store_group.backend
    try:
        if store_group.conn is not None:
            cursor = await store_group.conn.execute("SELECT 1")
            await cursor.fetchone()
        checks["store"] = "ok"
    except Exception as e:
        log.warning("ready_store_check_failed", error=str(e))
        checks["store"] = f"error: {e}"
        all_ok = False

    # 2. 压缩器状态
    compactor = getattr(request.app.state, "compactor", None)
    if compactor is None:
        checks["compactor"] = {"running": False, "queue_length": 0, "capacity": 0}
        all_ok = False
    else:
        running = compactor.state is CompactorState.RUNNING
        checks["compactor"] = {
            "running": running,
            "queue_length": compactor.queue.qsize(),
            "capacity": compactor.queue.capacity,
            "dropped_signals": compactor.queue.dropped,
        }
        if compactor.last_error is not None:
            checks["compactor"]["last_error"] = str(compactor.last_error)
        all_ok = all_ok and running

    # 3. 墓碑积压
    if checks["store"] == "ok":
        try:
            checks["tombstones_pending"] = (
                await store_group.task_store.count_tombstoned()
            )
        except Exception as e:
            log.warning("ready_tombstone_count_failed", error=str(e))
            checks["tombstones_pending"] = -1

    status_code = 200 if all_ok else 503
    status_text = "ready" if all_ok else "not_ready"

    return JSONResponse(
        status_code=status_code,
        content={
            "status": status_text,
            "checks": checks,
        },
    )

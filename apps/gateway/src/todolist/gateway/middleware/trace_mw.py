"""TraceMiddleware -- 为任务操作绑定 task_id

从 /api/tasks/{task_id} 路径中提取 task_id，贯穿该请求的所有日志。
"""

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# ULID 字符串长度
_ULID_LENGTH = 26


class TraceMiddleware(BaseHTTPMiddleware):
    """任务级追踪中间件"""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        parts = request.url.path.strip("/").split("/")

        # /api/tasks/{task_id}
        if len(parts) >= 3 and parts[0] == "api" and parts[1] == "tasks":
            task_id = parts[2]
            if len(task_id) == _ULID_LENGTH:
                structlog.contextvars.bind_contextvars(task_id=task_id)

        return await call_next(request)

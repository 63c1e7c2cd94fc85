"""LoggingMiddleware -- 访问日志 + 请求 ID

请求携带合法 X-Request-ID 时沿用（便于跨服务串联），否则生成 ULID。
每个请求记录耗时；5xx 以 warning 级别输出。
"""

import time

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from ulid import ULID

REQUEST_ID_HEADER = "X-Request-ID"
_MAX_REQUEST_ID_LEN = 64


def resolve_request_id(incoming: str | None) -> str:
    """校验上游传入的请求 ID；空、过长或含不可打印字符时重新生成"""
    if incoming:
        candidate = incoming.strip()
        if 0 < len(candidate) <= _MAX_REQUEST_ID_LEN and candidate.isprintable():
            return candidate
    return str(ULID())


class LoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        request_id = resolve_request_id(request.headers.get(REQUEST_ID_HEADER))

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        )
        log = structlog.get_logger()

        started = time.perf_counter()
        response = await call_next(request)
        duration_ms = round((time.perf_counter() - started) * 1000, 2)

        if response.status_code >= 500:
            await log.awarning(
                "request_failed",
                status_code=response.status_code,
                duration_ms=duration_ms,
            )
        else:
            await log.ainfo(
                "request_completed",
                status_code=response.status_code,
                duration_ms=duration_ms,
            )

        response.headers[REQUEST_ID_HEADER] = request_id
        return response

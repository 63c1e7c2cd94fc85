"""GzipRequestMiddleware -- 解压 Content-Encoding: gzip 的请求体

响应压缩由 starlette.middleware.gzip.GZipMiddleware 负责。
纯 ASGI 实现：读取请求体，解压后以单条 http.request 消息重放。
压缩体与解压结果都有大小上限，超出返回 413。
"""

import zlib

import structlog
from starlette.datastructures import Headers
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from ..responses import error_response

log = structlog.get_logger()

# 默认上限：压缩体 1 MiB，解压后 10 MiB
MAX_COMPRESSED_BYTES = 1024 * 1024
MAX_DECOMPRESSED_BYTES = 10 * 1024 * 1024

# gzip 头格式
_GZIP_WBITS = 16 + zlib.MAX_WBITS


class _BodyTooLarge(Exception):
    pass


class GzipRequestMiddleware:
    """请求体 gzip 解压中间件"""

    def __init__(
        self,
        app: ASGIApp,
        max_compressed_bytes: int = MAX_COMPRESSED_BYTES,
        max_decompressed_bytes: int = MAX_DECOMPRESSED_BYTES,
    ) -> None:
        self.app = app
        self.max_compressed_bytes = max_compressed_bytes
        self.max_decompressed_bytes = max_decompressed_bytes

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        encoding = Headers(scope=scope).get("content-encoding", "")
        if "gzip" not in encoding.lower():
            await self.app(scope, receive, send)
            return

        try:
            body = await self._read_body(receive)
            data = self._decompress(body)
        except _BodyTooLarge as e:
            log.warning("gzip_body_too_large", limit=str(e))
            response = error_response(413, "PAYLOAD_TOO_LARGE", "request body too large")
            await response(scope, receive, send)
            return
        except (EOFError, zlib.error) as e:
            log.warning("invalid_gzip_body", error=str(e))
            response = error_response(400, "INVALID_GZIP_BODY", "invalid gzip body")
            await response(scope, receive, send)
            return

        headers = [
            (key, value)
            for key, value in scope["headers"]
            if key not in (b"content-encoding", b"content-length")
        ]
        headers.append((b"content-length", str(len(data)).encode("latin-1")))
        scope = dict(scope, headers=headers)

        replayed = False

        async def receive_decompressed() -> Message:
            nonlocal replayed
            if not replayed:
                replayed = True
                return {"type": "http.request", "body": data, "more_body": False}
            return await receive()

        await self.app(scope, receive_decompressed, send)

    async def _read_body(self, receive: Receive) -> bytes:
        """读取完整请求体，超过压缩体上限立即中止"""
        chunks: list[bytes] = []
        size = 0
        more_body = True
        while more_body:
            message = await receive()
            chunk = message.get("body", b"")
            size += len(chunk)
            if size > self.max_compressed_bytes:
                raise _BodyTooLarge(f"compressed>{self.max_compressed_bytes}")
            chunks.append(chunk)
            more_body = message.get("more_body", False)
        return b"".join(chunks)

    def _decompress(self, body: bytes) -> bytes:
        """流式解压，输出超过上限即中止，不完整的 gzip 流视为非法"""
        decompressor = zlib.decompressobj(_GZIP_WBITS)
        data = decompressor.decompress(body, self.max_decompressed_bytes + 1)
        if len(data) > self.max_decompressed_bytes:
            raise _BodyTooLarge(f"decompressed>{self.max_decompressed_bytes}")
        if not decompressor.eof:
            raise EOFError("truncated gzip stream")
        return data

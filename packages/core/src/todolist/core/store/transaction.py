"""写事务封装

同一 aiosqlite 连接被请求处理协程与后台压缩器共享，
连接上的事务对所有协程可见，因此写事务由 Store 内部的锁串行化：
任一协程的 rollback 不会丢弃其他协程尚未提交的写入。
"""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import aiosqlite

from ..exceptions import StoreTimeoutError


@asynccontextmanager
async def write_transaction(
    conn: aiosqlite.Connection,
    lock: asyncio.Lock,
    operation: str,
    timeout_s: float | None = None,
) -> AsyncIterator[aiosqlite.Connection]:
    """在单个事务内执行写操作，成功提交、失败回滚

    Args:
        conn: 共享数据库连接
        lock: 连接级写锁
        operation: 操作名（用于超时错误信息）
        timeout_s: 单次调用超时，None 表示不限

    Raises:
        StoreTimeoutError: 超时，事务已回滚
        Exception: 其他失败，事务已回滚后原样抛出
    """
    async with lock:
        try:
            async with asyncio.timeout(timeout_s):
                yield conn
                await conn.commit()
        except TimeoutError as e:
            await conn.rollback()
            raise StoreTimeoutError(operation, timeout_s or 0.0) from e
        except (Exception, asyncio.CancelledError):
            # 外层取消同样回滚
            await conn.rollback()
            raise

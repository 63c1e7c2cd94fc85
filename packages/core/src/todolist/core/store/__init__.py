"""todolist Core Store -- SQLite / 内存持久化实现

提供工厂函数创建共享数据库连接的 Store 实例组。
"""

import asyncio
from pathlib import Path

import aiosqlite

from ..config import STORE_CALL_TIMEOUT_S
from .memory_store import InMemoryTaskStore, InMemoryUserStore
from .protocols import TaskStore, TombstoneStore, UserStore
from .sqlite_init import init_db
from .task_store import SqliteTaskStore
from .transaction import write_transaction
from .user_store import SqliteUserStore


class StoreGroup:
    """Store 实例组 -- 共享同一个数据库连接与写锁

    conn 为 None 时表示内存后端。
    """

    def __init__(
        self,
        conn: aiosqlite.Connection | None,
        task_store: TaskStore,
        user_store: UserStore,
    ) -> None:
        self.conn = conn
        self.task_store = task_store
        self.user_store = user_store

    @property
    def backend(self) -> str:
        return "sqlite" if self.conn is not None else "memory"

    async def close(self) -> None:
        """关闭数据库连接（内存后端无操作）"""
        if self.conn is not None:
            await self.conn.close()


async def create_store_group(
    db_path: str,
    call_timeout_s: float = STORE_CALL_TIMEOUT_S,
) -> StoreGroup:
    """创建 SQLite Store 实例组

    Args:
        db_path: SQLite 数据库文件路径
        call_timeout_s: 单次写调用超时（秒）

    Returns:
        StoreGroup 实例
    """
    # 确保数据库目录存在
    db_dir = Path(db_path).parent
    db_dir.mkdir(parents=True, exist_ok=True)

    conn = await aiosqlite.connect(db_path)
    await init_db(conn)

    write_lock = asyncio.Lock()
    return StoreGroup(
        conn=conn,
        task_store=SqliteTaskStore(conn, write_lock, call_timeout_s),
        user_store=SqliteUserStore(conn, write_lock, call_timeout_s),
    )


def create_memory_store_group() -> StoreGroup:
    """创建内存 Store 实例组"""
    return StoreGroup(
        conn=None,
        task_store=InMemoryTaskStore(),
        user_store=InMemoryUserStore(),
    )


__all__ = [
    "StoreGroup",
    "create_store_group",
    "create_memory_store_group",
    "SqliteTaskStore",
    "SqliteUserStore",
    "InMemoryTaskStore",
    "InMemoryUserStore",
    "TaskStore",
    "UserStore",
    "TombstoneStore",
    "init_db",
    "write_transaction",
]

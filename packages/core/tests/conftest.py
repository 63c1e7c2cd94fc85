"""packages/core 测试配置 -- 核心层 fixture"""

import asyncio
from collections.abc import Callable
from datetime import UTC, datetime, timedelta

import aiosqlite
import pytest
import pytest_asyncio
from todolist.core.exceptions import TransientStoreError
from todolist.core.models import Task, TaskStatus
from todolist.core.store import InMemoryTaskStore, SqliteTaskStore


@pytest_asyncio.fixture
async def sqlite_task_store(db_conn: aiosqlite.Connection) -> SqliteTaskStore:
    return SqliteTaskStore(db_conn)


class FlakyTaskStore(InMemoryTaskStore):
    """可注入故障的内存 Store：fail_purges > 0 时 delete_all_tombstoned 失败"""

    def __init__(self) -> None:
        super().__init__()
        self.fail_purges = 0
        self.purge_calls = 0
        self.purges_completed = 0
        self.purge_delay_s = 0.0

    async def delete_all_tombstoned(self) -> int:
        self.purge_calls += 1
        if self.purge_delay_s:
            await asyncio.sleep(self.purge_delay_s)
        if self.fail_purges > 0:
            self.fail_purges -= 1
            raise TransientStoreError("injected purge failure")
        purged = await super().delete_all_tombstoned()
        self.purges_completed += 1
        return purged


@pytest.fixture
def flaky_store() -> FlakyTaskStore:
    return FlakyTaskStore()


_BASE_TIME = datetime(2026, 1, 1, tzinfo=UTC)


@pytest.fixture
def make_task() -> Callable[..., Task]:
    """构造 Task，created_at 按序号递增"""

    def _make(
        n: int,
        owner_id: str = "owner-1",
        status: TaskStatus = TaskStatus.NEW,
    ) -> Task:
        ts = _BASE_TIME + timedelta(minutes=n)
        return Task(
            task_id=f"01JTASK{n:019d}",
            owner_id=owner_id,
            created_at=ts,
            updated_at=ts,
            status=status,
            title=f"任务 {n}",
        )

    return _make

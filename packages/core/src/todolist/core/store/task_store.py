"""TaskStore SQLite 实现

删除分两阶段：mark_deleted 仅置墓碑标记，
delete_all_tombstoned 由后台压缩器在单事务内批量物理删除。
所有读路径无条件过滤 deleted = 1 的行。
"""

import asyncio
from datetime import datetime

import aiosqlite

from ..config import STORE_CALL_TIMEOUT_S
from ..exceptions import TaskAlreadyExistsError, TaskNotFoundError
from ..models.task import Task, TaskAttributes
from .transaction import write_transaction

_TASK_COLUMNS = (
    "task_id, owner_id, created_at, updated_at, status, title, description, deleted"
)


class SqliteTaskStore:
    """TaskStore 的 SQLite 实现"""

    def __init__(
        self,
        conn: aiosqlite.Connection,
        write_lock: asyncio.Lock | None = None,
        call_timeout_s: float = STORE_CALL_TIMEOUT_S,
    ) -> None:
        self._conn = conn
        self._write_lock = write_lock or asyncio.Lock()
        self._call_timeout_s = call_timeout_s

    async def create_task(self, task: Task) -> None:
        """创建任务记录"""
        try:
            async with write_transaction(
                self._conn, self._write_lock, "create_task", self._call_timeout_s
            ):
                await self._conn.execute(
                    f"""
                    INSERT INTO tasks ({_TASK_COLUMNS})
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        task.task_id,
                        task.owner_id,
                        task.created_at.isoformat(),
                        task.updated_at.isoformat(),
                        task.status.value,
                        task.title,
                        task.description,
                        int(task.deleted),
                    ),
                )
        except aiosqlite.IntegrityError as e:
            raise TaskAlreadyExistsError(task.task_id) from e

    async def get_task(self, task_id: str, owner_id: str) -> Task | None:
        """根据 task_id + owner_id 查询未删除的任务"""
        cursor = await self._conn.execute(
            f"""
            SELECT {_TASK_COLUMNS} FROM tasks
            WHERE task_id = ? AND owner_id = ? AND deleted = 0
            """,
            (task_id, owner_id),
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        return self._row_to_task(row)

    async def list_tasks(self, owner_id: str, status: str | None = None) -> list[Task]:
        """查询用户的任务列表，支持按状态筛选，按 created_at 倒序"""
        if status:
            cursor = await self._conn.execute(
                f"""
                SELECT {_TASK_COLUMNS} FROM tasks
                WHERE owner_id = ? AND deleted = 0 AND status = ?
                ORDER BY created_at DESC
                """,
                (owner_id, status),
            )
        else:
            cursor = await self._conn.execute(
                f"""
                SELECT {_TASK_COLUMNS} FROM tasks
                WHERE owner_id = ? AND deleted = 0
                ORDER BY created_at DESC
                """,
                (owner_id,),
            )
        rows = await cursor.fetchall()
        return [self._row_to_task(row) for row in rows]

    async def update_task(
        self,
        task_id: str,
        owner_id: str,
        attributes: TaskAttributes,
        updated_at: datetime,
    ) -> None:
        """更新任务属性，已标记删除的任务视为不存在

        Raises:
            TaskNotFoundError: 无匹配的未删除行
        """
        async with write_transaction(
            self._conn, self._write_lock, "update_task", self._call_timeout_s
        ):
            cursor = await self._conn.execute(
                """
                UPDATE tasks
                SET status = ?, title = ?, description = ?, updated_at = ?
                WHERE task_id = ? AND owner_id = ? AND deleted = 0
                """,
                (
                    attributes.status.value,
                    attributes.title,
                    attributes.description,
                    updated_at.isoformat(),
                    task_id,
                    owner_id,
                ),
            )
            if cursor.rowcount == 0:
                raise TaskNotFoundError(task_id)

    async def mark_deleted(self, task_id: str, owner_id: str) -> None:
        """置墓碑标记，task_id 与 owner_id 必须同时匹配

        Raises:
            TaskNotFoundError: 无匹配的未删除行
        """
        async with write_transaction(
            self._conn, self._write_lock, "mark_deleted", self._call_timeout_s
        ):
            cursor = await self._conn.execute(
                """
                UPDATE tasks SET deleted = 1
                WHERE task_id = ? AND owner_id = ? AND deleted = 0
                """,
                (task_id, owner_id),
            )
            if cursor.rowcount == 0:
                raise TaskNotFoundError(task_id)

    async def delete_all_tombstoned(self) -> int:
        """单事务物理删除所有已标记行（不区分用户）

        任一步骤失败整体回滚，不存在部分删除。

        Returns:
            删除的行数；无墓碑时为 0
        """
        async with write_transaction(
            self._conn, self._write_lock, "delete_all_tombstoned", self._call_timeout_s
        ):
            cursor = await self._conn.execute("DELETE FROM tasks WHERE deleted = 1")
            purged = cursor.rowcount
        return purged

    async def count_tombstoned(self) -> int:
        """统计等待压缩的墓碑行数"""
        cursor = await self._conn.execute(
            "SELECT COUNT(*) FROM tasks WHERE deleted = 1"
        )
        row = await cursor.fetchone()
        return row[0] if row else 0

    @staticmethod
    def _row_to_task(row: aiosqlite.Row) -> Task:
        """将数据库行转换为 Task 模型"""
        return Task(
            task_id=row[0],
            owner_id=row[1],
            created_at=datetime.fromisoformat(row[2]),
            updated_at=datetime.fromisoformat(row[3]),
            status=row[4],
            title=row[5],
            description=row[6],
            deleted=bool(row[7]),
        )

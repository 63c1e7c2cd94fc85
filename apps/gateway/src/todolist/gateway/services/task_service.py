"""TaskService -- 任务增删改查业务逻辑

删除为软删除：
1. Store 置墓碑标记（task_id + owner_id 必须同时匹配）
2. 标记成功后通知 BatchCompactor（非阻塞，队满即丢弃）
3. 物理删除由后台压缩器批量完成
"""

from datetime import UTC, datetime

import structlog
from todolist.core.compaction import BatchCompactor
from todolist.core.exceptions import TaskNotFoundError
from todolist.core.models import Task, TaskAttributes, TaskStatus
from todolist.core.store import StoreGroup
from ulid import ULID

log = structlog.get_logger()


class TaskService:
    """任务业务服务"""

    def __init__(
        self,
        store_group: StoreGroup,
        compactor: BatchCompactor | None = None,
    ) -> None:
        self._stores = store_group
        self._compactor = compactor

    async def list_tasks(self, owner_id: str, status: str | None = None) -> list[Task]:
        """查询用户的任务列表（不含已标记删除）"""
        return await self._stores.task_store.list_tasks(owner_id, status)

    async def get_task(self, task_id: str, owner_id: str) -> Task | None:
        """查询任务详情，不存在或已标记删除返回 None"""
        if not task_id:
            return None
        return await self._stores.task_store.get_task(task_id, owner_id)

    async def create_task(self, owner_id: str, attributes: TaskAttributes) -> Task:
        """创建任务"""
        now = datetime.now(UTC)
        task = Task(
            task_id=str(ULID()),
            owner_id=owner_id,
            created_at=now,
            updated_at=now,
            status=attributes.status,
            title=attributes.title,
            description=attributes.description,
        )
        await self._stores.task_store.create_task(task)
        log.info("task_created", task_id=task.task_id, owner_id=owner_id)
        return task

    async def update_task(
        self,
        task_id: str,
        owner_id: str,
        attributes: TaskAttributes,
    ) -> Task:
        """更新任务属性

        Raises:
            TaskNotFoundError: 任务不存在、不属于该用户或已标记删除
        """
        now = datetime.now(UTC)
        await self._stores.task_store.update_task(task_id, owner_id, attributes, now)
        task = await self._stores.task_store.get_task(task_id, owner_id)
        if task is None:
            # 更新与读取之间被并发标记删除
            raise TaskNotFoundError(task_id)
        return task

    async def delete_task(self, task_id: str, owner_id: str) -> None:
        """软删除任务：置墓碑标记并通知压缩器

        Raises:
            TaskNotFoundError: 无匹配的未删除任务（不会通知压缩器）
        """
        await self._stores.task_store.mark_deleted(task_id, owner_id)
        log.info("task_marked_deleted", task_id=task_id, owner_id=owner_id)

        if self._compactor:
            self._compactor.notify()

    @staticmethod
    def valid_status(status: str | None) -> bool:
        """校验状态筛选参数"""
        return status is None or status in {s.value for s in TaskStatus}

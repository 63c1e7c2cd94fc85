"""Store Protocol 接口定义

定义 TaskStore、UserStore 的抽象接口，
使用 Python Protocol 实现结构化子类型（duck typing）。
SQLite 与内存实现均满足此接口，压缩器与服务层可独立替换测试替身。
"""

from datetime import datetime
from typing import Protocol

from ..models.task import Task, TaskAttributes
from ..models.user import User


class TombstoneStore(Protocol):
    """压缩器依赖的最小接口"""

    async def delete_all_tombstoned(self) -> int:
        """单事务物理删除所有墓碑行，返回删除行数"""
        ...


class TaskStore(TombstoneStore, Protocol):
    """Task 存储接口

    所有读操作必须过滤墓碑行。
    """

    async def create_task(self, task: Task) -> None:
        """创建任务记录"""
        ...

    async def get_task(self, task_id: str, owner_id: str) -> Task | None:
        """查询用户的未删除任务"""
        ...

    async def list_tasks(self, owner_id: str, status: str | None = None) -> list[Task]:
        """查询用户的未删除任务列表，支持按状态筛选"""
        ...

    async def update_task(
        self,
        task_id: str,
        owner_id: str,
        attributes: TaskAttributes,
        updated_at: datetime,
    ) -> None:
        """更新任务属性（不存在时抛 TaskNotFoundError）"""
        ...

    async def mark_deleted(self, task_id: str, owner_id: str) -> None:
        """置墓碑标记（不存在时抛 TaskNotFoundError）"""
        ...

    async def count_tombstoned(self) -> int:
        """统计等待压缩的墓碑行数"""
        ...


class UserStore(Protocol):
    """User 存储接口"""

    async def create_user(self, user: User) -> None:
        """创建用户（邮箱冲突抛 UserAlreadyExistsError）"""
        ...

    async def get_user(self, user_id: str) -> User | None:
        """根据 user_id 查询用户"""
        ...

    async def get_user_by_email(self, email: str) -> User | None:
        """根据邮箱查询用户"""
        ...

    async def list_users(self) -> list[User]:
        """查询全部用户"""
        ...

    async def update_user(self, user: User) -> None:
        """更新用户（不存在抛 UserNotFoundError）"""
        ...

    async def delete_user(self, user_id: str) -> None:
        """删除用户（不存在抛 UserNotFoundError）"""
        ...

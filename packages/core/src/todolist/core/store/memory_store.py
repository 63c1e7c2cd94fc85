"""内存 Store 实现

数据库不可用或显式配置 TODOLIST_STORE_BACKEND=memory 时使用，
墓碑语义与 SQLite 实现一致。各方法内部无 await，
在单个事件循环内天然原子。
"""

from datetime import datetime

from ..exceptions import (
    TaskAlreadyExistsError,
    TaskNotFoundError,
    UserAlreadyExistsError,
    UserNotFoundError,
)
from ..models.task import Task, TaskAttributes
from ..models.user import User


class InMemoryTaskStore:
    """TaskStore 的内存实现"""

    def __init__(self) -> None:
        self._tasks: dict[str, Task] = {}

    async def create_task(self, task: Task) -> None:
        if task.task_id in self._tasks:
            raise TaskAlreadyExistsError(task.task_id)
        self._tasks[task.task_id] = task.model_copy()

    async def get_task(self, task_id: str, owner_id: str) -> Task | None:
        task = self._tasks.get(task_id)
        if task is None or task.owner_id != owner_id or task.deleted:
            return None
        return task.model_copy()

    async def list_tasks(self, owner_id: str, status: str | None = None) -> list[Task]:
        tasks = [
            t.model_copy()
            for t in self._tasks.values()
            if t.owner_id == owner_id
            and not t.deleted
            and (not status or t.status == status)
        ]
        tasks.sort(key=lambda t: t.created_at, reverse=True)
        return tasks

    async def update_task(
        self,
        task_id: str,
        owner_id: str,
        attributes: TaskAttributes,
        updated_at: datetime,
    ) -> None:
        task = self._tasks.get(task_id)
        if task is None or task.owner_id != owner_id or task.deleted:
            raise TaskNotFoundError(task_id)
        self._tasks[task_id] = task.model_copy(
            update={
                "status": attributes.status,
                "title": attributes.title,
                "description": attributes.description,
                "updated_at": updated_at,
            }
        )

    async def mark_deleted(self, task_id: str, owner_id: str) -> None:
        task = self._tasks.get(task_id)
        if task is None or task.owner_id != owner_id or task.deleted:
            raise TaskNotFoundError(task_id)
        self._tasks[task_id] = task.model_copy(update={"deleted": True})

    async def delete_all_tombstoned(self) -> int:
        survivors = {k: t for k, t in self._tasks.items() if not t.deleted}
        purged = len(self._tasks) - len(survivors)
        self._tasks = survivors
        return purged

    async def count_tombstoned(self) -> int:
        return sum(1 for t in self._tasks.values() if t.deleted)


class InMemoryUserStore:
    """UserStore 的内存实现"""

    def __init__(self) -> None:
        self._users: dict[str, User] = {}

    def _email_taken(self, email: str, exclude_user_id: str | None = None) -> bool:
        return any(
            u.email == email and u.user_id != exclude_user_id
            for u in self._users.values()
        )

    async def create_user(self, user: User) -> None:
        if user.user_id in self._users or self._email_taken(user.email):
            raise UserAlreadyExistsError(user.email)
        self._users[user.user_id] = user.model_copy()

    async def get_user(self, user_id: str) -> User | None:
        user = self._users.get(user_id)
        return user.model_copy() if user else None

    async def get_user_by_email(self, email: str) -> User | None:
        for user in self._users.values():
            if user.email == email:
                return user.model_copy()
        return None

    async def list_users(self) -> list[User]:
        users = [u.model_copy() for u in self._users.values()]
        users.sort(key=lambda u: u.created_at)
        return users

    async def update_user(self, user: User) -> None:
        if user.user_id not in self._users:
            raise UserNotFoundError(user.user_id)
        if self._email_taken(user.email, exclude_user_id=user.user_id):
            raise UserAlreadyExistsError(user.email)
        self._users[user.user_id] = user.model_copy()

    async def delete_user(self, user_id: str) -> None:
        if self._users.pop(user_id, None) is None:
            raise UserNotFoundError(user_id)

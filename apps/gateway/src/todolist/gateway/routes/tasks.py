"""任务路由 -- 当前登录用户的任务增删改查

GET    /api/tasks: 任务列表，支持 status 筛选，按 created_at 倒序。
POST   /api/tasks: 创建任务。
GET    /api/tasks/{task_id}: 任务详情。
PUT    /api/tasks/{task_id}: 更新任务属性。
DELETE /api/tasks/{task_id}: 软删除，物理删除由后台压缩器完成。
"""

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from todolist.core.exceptions import TaskNotFoundError
from todolist.core.models import Task, TaskAttributes

from ..deps import get_compactor, get_current_user_id, get_store_group
from ..responses import error_response
from ..services.task_service import TaskService

router = APIRouter()


class TaskResponse(BaseModel):
    """任务详情"""

    task_id: str
    created_at: str
    updated_at: str
    status: str
    title: str
    description: str

    @classmethod
    def from_task(cls, task: Task) -> "TaskResponse":
        return cls(
            task_id=task.task_id,
            created_at=task.created_at.isoformat(),
            updated_at=task.updated_at.isoformat(),
            status=task.status.value,
            title=task.title,
            description=task.description,
        )


class TaskListResponse(BaseModel):
    """任务列表响应"""

    tasks: list[TaskResponse]


class TaskCreateResponse(BaseModel):
    task_id: str


class TaskDeleteResponse(BaseModel):
    task_id: str
    deleted: bool


def _task_not_found(task_id: str):
    return error_response(
        404, "TASK_NOT_FOUND", f"Task with id {task_id} does not exist"
    )


@router.get("/api/tasks", response_model=TaskListResponse)
async def list_tasks(
    status: str | None = Query(default=None, description="按状态筛选"),
    user_id: str = Depends(get_current_user_id),
    store_group=Depends(get_store_group),
):
    """查询当前用户的任务列表"""
    if not TaskService.valid_status(status):
        return error_response(400, "INVALID_STATUS", f"unknown task status: {status}")

    service = TaskService(store_group)
    tasks = await service.list_tasks(user_id, status)
    return TaskListResponse(tasks=[TaskResponse.from_task(t) for t in tasks])


@router.post("/api/tasks", status_code=201, response_model=TaskCreateResponse)
async def create_task(
    attributes: TaskAttributes,
    user_id: str = Depends(get_current_user_id),
    store_group=Depends(get_store_group),
):
    """创建任务，返回新任务 ID"""
    service = TaskService(store_group)
    task = await service.create_task(user_id, attributes)
    return TaskCreateResponse(task_id=task.task_id)


@router.get("/api/tasks/{task_id}", response_model=TaskResponse)
async def get_task(
    task_id: str,
    user_id: str = Depends(get_current_user_id),
    store_group=Depends(get_store_group),
):
    """查询任务详情，已标记删除视为不存在"""
    service = TaskService(store_group)
    task = await service.get_task(task_id, user_id)
    if task is None:
        return _task_not_found(task_id)
    return TaskResponse.from_task(task)


@router.put("/api/tasks/{task_id}", response_model=TaskResponse)
async def update_task(
    task_id: str,
    attributes: TaskAttributes,
    user_id: str = Depends(get_current_user_id),
    store_group=Depends(get_store_group),
):
    """更新任务标题、描述与状态"""
    service = TaskService(store_group)
    try:
        task = await service.update_task(task_id, user_id, attributes)
    except TaskNotFoundError:
        return _task_not_found(task_id)
    return TaskResponse.from_task(task)


@router.delete("/api/tasks/{task_id}", response_model=TaskDeleteResponse)
async def delete_task(
    task_id: str,
    user_id: str = Depends(get_current_user_id),
    store_group=Depends(get_store_group),
    compactor=Depends(get_compactor),
):
    """软删除任务并通知压缩器"""
    service = TaskService(store_group, compactor)
    try:
        await service.delete_task(task_id, user_id)
    except TaskNotFoundError:
        return _task_not_found(task_id)
    return TaskDeleteResponse(task_id=task_id, deleted=True)

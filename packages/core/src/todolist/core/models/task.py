"""Task Domain Model

deleted 为墓碑标记：置位后任务对所有读路径不可见，
由后台压缩器批量物理删除。墓碑流转单向，不可恢复。
"""

from datetime import datetime

from pydantic import BaseModel, Field

from .enums import TaskStatus


class TaskAttributes(BaseModel):
    """任务可编辑属性（创建/更新请求体）"""

    title: str = Field(min_length=1, max_length=200, description="任务标题")
    description: str = Field(default="", max_length=4000, description="任务描述")
    status: TaskStatus = Field(default=TaskStatus.NEW, description="任务状态")


class Task(BaseModel):
    """Task 数据模型"""

    task_id: str = Field(description="唯一标识，ULID 格式")
    owner_id: str = Field(description="所属用户 ID")
    created_at: datetime = Field(description="创建时间")
    updated_at: datetime = Field(description="更新时间")
    status: TaskStatus = Field(default=TaskStatus.NEW, description="当前状态")
    title: str = Field(description="任务标题")
    description: str = Field(default="", description="任务描述")
    deleted: bool = Field(default=False, description="墓碑标记")

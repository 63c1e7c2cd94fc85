"""todolist Core Domain Models -- 公共类型导出

所有公共模型类型从此入口导入。
"""

from .enums import TaskStatus
from .task import Task, TaskAttributes
from .user import User, UserLoginRequest, UserPublic, UserRequest

__all__ = [
    # 枚举
    "TaskStatus",
    # Task
    "Task",
    "TaskAttributes",
    # User
    "User",
    "UserRequest",
    "UserLoginRequest",
    "UserPublic",
]

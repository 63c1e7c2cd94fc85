"""枚举定义

TaskStatus 任务状态。
"""

from enum import StrEnum


class TaskStatus(StrEnum):
    """任务状态"""

    NEW = "New"
    IN_PROGRESS = "InProgress"
    DONE = "Done"

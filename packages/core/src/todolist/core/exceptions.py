"""异常体系

Store 层错误、业务错误与压缩（compaction）错误。
"""


class TodoListError(Exception):
    """基础异常"""

    def __init__(self, message: str, recoverable: bool = False) -> None:
        """
        Args:
            message: 错误描述
            recoverable: 是否可通过后续重试恢复
        """
        super().__init__(message)
        self.recoverable = recoverable


class StoreError(TodoListError):
    """Store 层基础异常"""


class TransientStoreError(StoreError):
    """暂时性存储错误（超时、连接失败等）

    压缩流程中出现时仅记录日志，由下一个 tick 或 stop() 隐式重试。
    """

    def __init__(self, message: str) -> None:
        super().__init__(message, recoverable=True)


class StoreTimeoutError(TransientStoreError):
    """Store 调用超过单次调用超时"""

    def __init__(self, operation: str, timeout_s: float) -> None:
        super().__init__(f"Store 调用超时: {operation} ({timeout_s}s)")
        self.operation = operation
        self.timeout_s = timeout_s


class TaskNotFoundError(StoreError):
    """任务不存在、不属于该用户或已被标记删除"""

    def __init__(self, task_id: str) -> None:
        super().__init__(f"Task with id {task_id} does not exist")
        self.task_id = task_id


class TaskAlreadyExistsError(StoreError):
    """task_id 冲突"""

    def __init__(self, task_id: str) -> None:
        super().__init__(f"Task with id {task_id} already exists")
        self.task_id = task_id


class UserNotFoundError(StoreError):
    """用户不存在"""

    def __init__(self, key: str) -> None:
        super().__init__(f"User {key} does not exist")
        self.key = key


class UserAlreadyExistsError(StoreError):
    """邮箱已被注册"""

    def __init__(self, email: str) -> None:
        super().__init__(f"User with email {email} already exists")
        self.email = email


class InvalidCredentialsError(TodoListError):
    """登录凭证无效（用户不存在或密码错误统一返回）"""

    def __init__(self) -> None:
        super().__init__("the credentials are invalid")


class CompactionError(TodoListError):
    """墓碑压缩失败"""

    def __init__(self, message: str, original_error: Exception | None = None) -> None:
        super().__init__(message, recoverable=True)
        self.original_error = original_error


class ShutdownFlushError(CompactionError):
    """stop() 时最后一次 flush 失败

    调用方应记录日志并继续关闭流程，不中断 teardown。
    """

"""BatchCompactor -- 墓碑批量压缩器

状态：Running / Stopped。
- 单个后台协程每 interval_s 检查一次通知队列，饱和时执行 compact()。
- 外部取消信号（asyncio.Event）只在 tick 边界检查：进行中的压缩不会被抢占，
  取消后循环立即退出，不做最后一次压缩。
- stop() 为终止操作：等待循环退出，同步执行最后一次 compact() 后关闭队列。

压缩失败时仅记录日志，墓碑行保留到下一个周期；
队列只在删除成功后才按开始时的长度清空，失败后仍保持饱和，下一个 tick 即重试。
"""

import asyncio
import time
from enum import StrEnum

import structlog

from .config import STORE_CALL_TIMEOUT_S, CompactionConfig
from .exceptions import (
    CompactionError,
    ShutdownFlushError,
    StoreTimeoutError,
)
from .notification_queue import NotificationQueue
from .store.protocols import TombstoneStore

log = structlog.get_logger()


class CompactorState(StrEnum):
    """压缩器状态"""

    IDLE = "idle"
    RUNNING = "running"
    STOPPED = "stopped"


class BatchCompactor:
    """墓碑批量压缩器 -- 持有通知队列与压缩调度"""

    def __init__(
        self,
        store: TombstoneStore,
        capacity: int,
        interval_s: float,
        cancel_event: asyncio.Event | None = None,
        call_timeout_s: float = STORE_CALL_TIMEOUT_S,
    ) -> None:
        """
        Args:
            store: 提供 delete_all_tombstoned() 的 Store
            capacity: 通知队列容量，饱和即触发压缩
            interval_s: tick 周期（秒）
            cancel_event: 外部持有的取消信号，None 时自建
            call_timeout_s: 单次 Store 调用超时（秒）
        """
        if interval_s <= 0:
            raise ValueError(f"interval_s must be > 0, got {interval_s}")
        self._store = store
        self._queue = NotificationQueue(capacity)
        self._interval_s = interval_s
        self._cancel_event = cancel_event or asyncio.Event()
        self._call_timeout_s = call_timeout_s
        self._loop_task: asyncio.Task | None = None
        self._state = CompactorState.IDLE
        self._last_error: Exception | None = None

    @classmethod
    def from_config(
        cls,
        store: TombstoneStore,
        config: CompactionConfig,
        cancel_event: asyncio.Event | None = None,
    ) -> "BatchCompactor":
        return cls(
            store=store,
            capacity=config.capacity,
            interval_s=config.interval_s,
            cancel_event=cancel_event,
            call_timeout_s=config.store_call_timeout_s,
        )

    @property
    def state(self) -> CompactorState:
        return self._state

    @property
    def queue(self) -> NotificationQueue:
        return self._queue

    @property
    def last_error(self) -> Exception | None:
        """最近一次压缩失败的异常，成功后清空"""
        return self._last_error

    def start(self) -> None:
        """启动周期循环（进程启动时调用一次）"""
        if self._state is not CompactorState.IDLE:
            raise RuntimeError(f"compactor cannot start from state {self._state}")
        self._loop_task = asyncio.create_task(self._run(), name="batch-compactor")
        self._state = CompactorState.RUNNING
        log.info(
            "batch_compactor_started",
            capacity=self._queue.capacity,
            interval_s=self._interval_s,
        )

    def notify(self) -> bool:
        """记录一次墓碑事件（TaskService 在 mark_deleted 成功后调用）"""
        return self._queue.notify()

    async def compact(self) -> int:
        """执行一次压缩

        先调用 Store 的原子删除，成功后再按开始时的队列长度清空令牌，
        压缩期间新到达的信号保留到下一个周期。

        Returns:
            物理删除的行数

        Raises:
            CompactionError: Store 调用失败或超时，墓碑行保持不变
        """
        pending = self._queue.qsize()
        started = time.monotonic()
        try:
            async with asyncio.timeout(self._call_timeout_s):
                purged = await self._store.delete_all_tombstoned()
        except TimeoutError as e:
            error = StoreTimeoutError("delete_all_tombstoned", self._call_timeout_s)
            self._last_error = error
            raise CompactionError(str(error), original_error=error) from e
        except Exception as e:
            self._last_error = e
            raise CompactionError(
                f"failed to purge tombstoned tasks: {e}", original_error=e
            ) from e

        drained = self._queue.drain(pending)
        self._last_error = None
        log.info(
            "compaction_completed",
            purged=purged,
            signals_drained=drained,
            duration_ms=int((time.monotonic() - started) * 1000),
        )
        return purged

    async def stop(self) -> int:
        """终止压缩器：停止循环、最后 flush 一次、关闭队列

        在关闭 Store 之前调用。队列无论 flush 是否成功都会关闭。

        Returns:
            最后一次压缩删除的行数

        Raises:
            ShutdownFlushError: 最后一次压缩失败
        """
        if self._state is CompactorState.STOPPED:
            return 0

        self._cancel_event.set()
        if self._loop_task is not None:
            await self._loop_task
            self._loop_task = None

        try:
            return await self.compact()
        except CompactionError as e:
            raise ShutdownFlushError(
                f"final compaction flush failed: {e}",
                original_error=e.original_error,
            ) from e
        finally:
            self._queue.close()
            self._state = CompactorState.STOPPED
            log.info("batch_compactor_stopped", dropped_signals=self._queue.dropped)

    async def _run(self) -> None:
        """周期循环：每个 tick 检查饱和，取消信号置位后退出"""
        while True:
            try:
                await asyncio.wait_for(
                    self._cancel_event.wait(), timeout=self._interval_s
                )
            except TimeoutError:
                pass
            else:
                log.info("batch_compactor_loop_cancelled")
                return

            if not self._queue.saturated:
                continue

            try:
                await self.compact()
            except CompactionError as e:
                log.error(
                    "compaction_failed",
                    error=str(e),
                    error_type=type(e.original_error).__name__,
                    queue_length=self._queue.qsize(),
                )

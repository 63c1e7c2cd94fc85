"""NotificationQueue -- 有界、非阻塞的删除信号计数器

令牌不携带任何数据，队列仅用作"饱和计数器"：
压缩是全表扫描，无需追踪具体被删除的 task_id。
满时直接丢弃信号并记录告警：对应的行已置墓碑，
下一次压缩无论信号是否保留都会将其清除。
"""

import asyncio

import structlog

log = structlog.get_logger()

# 无负载令牌
_TOKEN = object()


class NotificationQueue:
    """基于 asyncio.Queue 的有界信号队列（多生产者 / 单消费者）"""

    def __init__(self, capacity: int) -> None:
        if capacity < 1:
            raise ValueError(f"capacity must be >= 1, got {capacity}")
        self._capacity = capacity
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=capacity)
        self._closed = False
        self._dropped = 0

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def dropped(self) -> int:
        """累计丢弃的信号数"""
        return self._dropped

    @property
    def saturated(self) -> bool:
        return self._queue.qsize() >= self._capacity

    def qsize(self) -> int:
        return self._queue.qsize()

    def notify(self) -> bool:
        """尝试放入一个令牌，永不阻塞、永不抛异常

        在请求处理路径内同步调用。

        Returns:
            True 表示已入队，False 表示因队满或已关闭被丢弃
        """
        if self._closed:
            self._dropped += 1
            log.warning("compaction_signal_after_close", capacity=self._capacity)
            return False

        try:
            self._queue.put_nowait(_TOKEN)
        except asyncio.QueueFull:
            self._dropped += 1
            log.warning(
                "compaction_signal_dropped",
                capacity=self._capacity,
                dropped_total=self._dropped,
            )
            return False

        log.debug("compaction_signal_queued", queue_length=self._queue.qsize())
        return True

    def drain(self, limit: int | None = None) -> int:
        """取出并丢弃令牌，重置饱和计数

        Args:
            limit: 最多取出的令牌数，None 表示清空

        Returns:
            实际取出的令牌数
        """
        drained = 0
        while limit is None or drained < limit:
            try:
                self._queue.get_nowait()
            except asyncio.QueueEmpty:
                break
            drained += 1
        return drained

    def close(self) -> None:
        """关闭队列，之后的 notify() 一律丢弃"""
        self._closed = True

"""BatchCompactor 单元测试

测试内容：
1. 饱和触发压缩（tick 周期缩短到 50ms）
2. stop() 的最后一次 flush
3. 压缩失败保留墓碑、下一个 tick 重试
4. 外部取消信号：循环退出且不做最后压缩
5. compact() 幂等
"""

import asyncio

import pytest
from todolist.core.compaction import BatchCompactor, CompactorState
from todolist.core.config import CompactionConfig
from todolist.core.exceptions import CompactionError, ShutdownFlushError

INTERVAL_S = 0.05


async def _wait_until(predicate, timeout_s: float = 2.0) -> None:
    """轮询等待条件成立"""
    async with asyncio.timeout(timeout_s):
        while not predicate():
            await asyncio.sleep(0.01)


async def _mark_and_notify(store, compactor, make_task, n: int) -> None:
    """创建 n 个任务并逐个软删除 + 通知"""
    for i in range(n):
        task = make_task(i)
        await store.create_task(task)
        await store.mark_deleted(task.task_id, task.owner_id)
        compactor.notify()


class TestLifecycle:
    async def test_start_sets_running(self, flaky_store):
        compactor = BatchCompactor(flaky_store, capacity=3, interval_s=INTERVAL_S)
        assert compactor.state is CompactorState.IDLE

        compactor.start()
        assert compactor.state is CompactorState.RUNNING

        await compactor.stop()
        assert compactor.state is CompactorState.STOPPED

    async def test_start_twice_rejected(self, flaky_store):
        compactor = BatchCompactor(flaky_store, capacity=3, interval_s=INTERVAL_S)
        compactor.start()
        with pytest.raises(RuntimeError):
            compactor.start()
        await compactor.stop()

    async def test_stop_is_idempotent(self, flaky_store):
        compactor = BatchCompactor(flaky_store, capacity=3, interval_s=INTERVAL_S)
        compactor.start()
        await compactor.stop()
        assert await compactor.stop() == 0
        assert flaky_store.purge_calls == 1

    async def test_invalid_interval(self, flaky_store):
        with pytest.raises(ValueError):
            BatchCompactor(flaky_store, capacity=3, interval_s=0)

    async def test_from_config(self, flaky_store):
        config = CompactionConfig(capacity=7, interval_s=1.5, store_call_timeout_s=0.5)
        compactor = BatchCompactor.from_config(flaky_store, config)
        assert compactor.queue.capacity == 7


class TestSaturationTrigger:
    async def test_saturated_queue_compacted_on_tick(self, flaky_store, make_task):
        """C=3：3 次 mark+notify 后下一个 tick 物理删除，队列清空"""
        compactor = BatchCompactor(flaky_store, capacity=3, interval_s=INTERVAL_S)
        compactor.start()

        await _mark_and_notify(flaky_store, compactor, make_task, 3)
        assert compactor.queue.saturated is True

        await _wait_until(lambda: compactor.queue.qsize() == 0)
        assert await flaky_store.count_tombstoned() == 0
        assert flaky_store.purge_calls == 1

        await compactor.stop()

    async def test_unsaturated_queue_not_compacted(self, flaky_store, make_task):
        """未饱和时 tick 不触发压缩"""
        compactor = BatchCompactor(flaky_store, capacity=3, interval_s=INTERVAL_S)
        compactor.start()

        await _mark_and_notify(flaky_store, compactor, make_task, 2)
        await asyncio.sleep(INTERVAL_S * 4)

        assert flaky_store.purge_calls == 0
        assert compactor.queue.qsize() == 2
        assert await flaky_store.count_tombstoned() == 2

        await compactor.stop()

    async def test_overflow_signals_dropped_rows_still_purged(
        self, flaky_store, make_task
    ):
        """超出容量的信号被丢弃，但对应墓碑行仍在同一次压缩中删除"""
        compactor = BatchCompactor(flaky_store, capacity=2, interval_s=10)

        await _mark_and_notify(flaky_store, compactor, make_task, 5)
        assert compactor.queue.dropped == 3

        assert await compactor.compact() == 5
        assert compactor.queue.qsize() == 0


class TestStopFlush:
    async def test_stop_flushes_unsaturated_queue(self, flaky_store, make_task):
        """C=3：2 次 mark+notify 后 stop() 仍删除两行"""
        compactor = BatchCompactor(flaky_store, capacity=3, interval_s=10)
        compactor.start()

        await _mark_and_notify(flaky_store, compactor, make_task, 2)
        purged = await compactor.stop()

        assert purged == 2
        assert await flaky_store.count_tombstoned() == 0

    async def test_stop_closes_queue(self, flaky_store):
        compactor = BatchCompactor(flaky_store, capacity=3, interval_s=10)
        compactor.start()
        await compactor.stop()

        assert compactor.queue.closed is True
        assert compactor.notify() is False

    async def test_stop_flush_failure_raises(self, flaky_store, make_task):
        """最后一次 flush 失败抛 ShutdownFlushError，队列仍关闭"""
        compactor = BatchCompactor(flaky_store, capacity=3, interval_s=10)
        compactor.start()
        await _mark_and_notify(flaky_store, compactor, make_task, 1)

        flaky_store.fail_purges = 1
        with pytest.raises(ShutdownFlushError):
            await compactor.stop()

        assert compactor.state is CompactorState.STOPPED
        assert compactor.queue.closed is True
        assert await flaky_store.count_tombstoned() == 1

    async def test_stop_without_start(self, flaky_store, make_task):
        compactor = BatchCompactor(flaky_store, capacity=3, interval_s=10)
        await _mark_and_notify(flaky_store, compactor, make_task, 1)

        assert await compactor.stop() == 1


class TestFailureRetry:
    async def test_failed_tick_keeps_rows_and_retries(self, flaky_store, make_task):
        """tick 内压缩失败：行保持墓碑且不可见，队列保持饱和，下一个 tick 重试成功"""
        compactor = BatchCompactor(flaky_store, capacity=3, interval_s=INTERVAL_S)
        flaky_store.fail_purges = 1
        compactor.start()
        await _mark_and_notify(flaky_store, compactor, make_task, 3)

        await _wait_until(lambda: flaky_store.purge_calls >= 2)
        await _wait_until(lambda: compactor.queue.qsize() == 0)

        assert await flaky_store.count_tombstoned() == 0
        assert compactor.last_error is None
        await compactor.stop()

    async def test_failure_state_visible(self, flaky_store, make_task):
        """失败后墓碑行对读路径不可见，last_error 记录原因"""
        compactor = BatchCompactor(flaky_store, capacity=3, interval_s=10)
        await _mark_and_notify(flaky_store, compactor, make_task, 3)

        flaky_store.fail_purges = 1
        with pytest.raises(CompactionError):
            await compactor.compact()

        assert compactor.last_error is not None
        assert compactor.queue.qsize() == 3
        assert await flaky_store.count_tombstoned() == 3
        task = make_task(0)
        assert await flaky_store.get_task(task.task_id, task.owner_id) is None
        assert await flaky_store.list_tasks(task.owner_id) == []

        assert await compactor.compact() == 3
        assert compactor.last_error is None
        assert compactor.queue.qsize() == 0

    async def test_store_timeout_becomes_compaction_error(self, flaky_store, make_task):
        compactor = BatchCompactor(
            flaky_store, capacity=3, interval_s=10, call_timeout_s=0.02
        )
        await _mark_and_notify(flaky_store, compactor, make_task, 1)
        flaky_store.purge_delay_s = 0.5

        with pytest.raises(CompactionError) as exc_info:
            await compactor.compact()

        assert "delete_all_tombstoned" in str(exc_info.value)
        assert compactor.queue.qsize() == 1


class TestCancellation:
    async def test_cancel_event_exits_without_final_compaction(
        self, flaky_store, make_task
    ):
        """外部取消信号：循环退出，不做最后压缩"""
        cancel_event = asyncio.Event()
        compactor = BatchCompactor(
            flaky_store, capacity=3, interval_s=INTERVAL_S, cancel_event=cancel_event
        )
        compactor.start()
        await _mark_and_notify(flaky_store, compactor, make_task, 2)

        cancel_event.set()
        await asyncio.sleep(INTERVAL_S * 3)

        assert flaky_store.purge_calls == 0
        assert await flaky_store.count_tombstoned() == 2
        await compactor.stop()

    async def test_in_flight_compaction_not_preempted(self, flaky_store, make_task):
        """进行中的压缩完成后才响应取消"""
        cancel_event = asyncio.Event()
        compactor = BatchCompactor(
            flaky_store, capacity=1, interval_s=INTERVAL_S, cancel_event=cancel_event
        )
        flaky_store.purge_delay_s = 0.1
        compactor.start()
        await _mark_and_notify(flaky_store, compactor, make_task, 1)

        # tick 内的压缩已开始（仍在 Store 调用中）时置取消信号
        await _wait_until(lambda: flaky_store.purge_calls == 1)
        assert flaky_store.purges_completed == 0
        cancel_event.set()

        # 不调用 stop()：进行中的压缩仍然完成并清空队列
        await _wait_until(lambda: flaky_store.purges_completed == 1)
        assert compactor.queue.qsize() == 0
        assert await flaky_store.count_tombstoned() == 0

        # 循环已退出，不再有新的压缩
        await asyncio.sleep(INTERVAL_S * 3)
        assert flaky_store.purge_calls == 1

        await compactor.stop()
        assert flaky_store.purge_calls == 2


class TestIdempotency:
    async def test_compact_twice(self, flaky_store, make_task):
        """第二次 compact() 删除 0 行且不报错"""
        compactor = BatchCompactor(flaky_store, capacity=3, interval_s=10)
        await _mark_and_notify(flaky_store, compactor, make_task, 2)

        assert await compactor.compact() == 2
        assert await compactor.compact() == 0
        assert compactor.queue.qsize() == 0

    async def test_signals_arriving_during_compaction_kept(
        self, flaky_store, make_task
    ):
        """压缩期间到达的信号保留到下一个周期"""
        compactor = BatchCompactor(flaky_store, capacity=5, interval_s=10)
        await _mark_and_notify(flaky_store, compactor, make_task, 2)
        flaky_store.purge_delay_s = 0.05

        compaction = asyncio.create_task(compactor.compact())
        await asyncio.sleep(0.01)
        compactor.notify()
        await compaction

        assert compactor.queue.qsize() == 1

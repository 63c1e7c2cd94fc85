"""CLI 入口模块 -- python -m todolist.core <command>

支持的命令：
  purge-tombstones  立即物理删除所有已标记删除的任务
  stats             输出等待压缩的墓碑行数
"""

import asyncio
import sys

from .config import get_db_path, load_compaction_config


def main() -> None:
    """CLI 主入口"""
    if len(sys.argv) < 2:
        print("用法: python -m todolist.core <command>")
        print("命令:")
        print("  purge-tombstones  立即物理删除所有已标记删除的任务")
        print("  stats             输出等待压缩的墓碑行数")
        sys.exit(1)

    command = sys.argv[1]

    if command == "purge-tombstones":
        asyncio.run(purge_tombstones())
    elif command == "stats":
        asyncio.run(tombstone_stats())
    else:
        print(f"未知命令: {command}")
        print("可用命令: purge-tombstones, stats")
        sys.exit(1)


async def purge_tombstones() -> int:
    """执行一次压缩并返回删除行数"""
    from .compaction import BatchCompactor
    from .exceptions import CompactionError
    from .store import create_store_group

    db_path = get_db_path()
    config = load_compaction_config()

    print(f"数据库路径: {db_path}")
    print("开始压缩墓碑任务...")

    store_group = await create_store_group(db_path, config.store_call_timeout_s)
    compactor = BatchCompactor.from_config(store_group.task_store, config)

    try:
        purged = await compactor.compact()
    except CompactionError as e:
        print(f"压缩失败: {e}")
        sys.exit(2)
    finally:
        await store_group.close()

    print(f"压缩完成，删除 {purged} 条任务")
    return purged


async def tombstone_stats() -> int:
    """输出墓碑行数"""
    from .store import create_store_group

    store_group = await create_store_group(get_db_path())
    try:
        pending = await store_group.task_store.count_tombstoned()
    finally:
        await store_group.close()

    print(f"等待压缩的墓碑任务: {pending}")
    return pending


if __name__ == "__main__":
    main()

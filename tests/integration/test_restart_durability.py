"""进程重启测试 -- 关闭时 flush 墓碑行，未删除的任务保留"""

from pathlib import Path

import aiosqlite
from httpx import ASGITransport, AsyncClient
from todolist.gateway.main import create_app


async def _login(client: AsyncClient) -> None:
    credentials = {"email": "restart@example.com", "password": "secret123"}
    await client.post("/api/users/register", json={"name": "restart", **credentials})
    resp = await client.post("/api/users/login", json=credentials)
    assert resp.status_code == 200


class TestRestart:
    async def test_shutdown_flush_then_restart(self, integration_env: Path):
        app = create_app()
        async with app.router.lifespan_context(app):
            async with AsyncClient(
                transport=ASGITransport(app=app), base_url="http://test"
            ) as client:
                await _login(client)
                keep = (await client.post("/api/tasks", json={"title": "keep"})).json()
                drop = (await client.post("/api/tasks", json={"title": "drop"})).json()
                await client.delete(f"/api/tasks/{drop['task_id']}")

        # 队列未饱和，关闭时的最后一次压缩已物理删除
        async with aiosqlite.connect(str(integration_env)) as conn:
            cursor = await conn.execute("SELECT task_id, deleted FROM tasks")
            rows = await cursor.fetchall()
        assert rows == [(keep["task_id"], 0)]

        restarted = create_app()
        async with restarted.router.lifespan_context(restarted):
            async with AsyncClient(
                transport=ASGITransport(app=restarted), base_url="http://test"
            ) as client:
                await _login(client)
                tasks = (await client.get("/api/tasks")).json()["tasks"]
        assert [t["title"] for t in tasks] == ["keep"]

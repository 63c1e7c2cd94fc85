"""集成测试共享 fixture -- 通过真实 lifespan 启动 app（tick 周期缩短）"""

import asyncio
from collections.abc import AsyncGenerator, Awaitable, Callable
from pathlib import Path

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

TICK_S = 0.05


@pytest.fixture
def integration_env(tmp_path: Path, monkeypatch) -> Path:
    db_path = tmp_path / "integration.db"
    monkeypatch.setenv("TODOLIST_DB_PATH", str(db_path))
    monkeypatch.setenv("TODOLIST_COMPACTION_CAPACITY", "3")
    monkeypatch.setenv("TODOLIST_COMPACTION_INTERVAL_S", str(TICK_S))
    monkeypatch.setenv("TODOLIST_SESSION_SECRET", "integration-test-secret-32-plus-bytes")
    monkeypatch.setenv("LOGFIRE_SEND_TO_LOGFIRE", "false")
    monkeypatch.delenv("TODOLIST_STORE_BACKEND", raising=False)
    monkeypatch.delenv("TODOLIST_CONFIG_FILE", raising=False)
    return db_path


@pytest_asyncio.fixture
async def integration_app(integration_env: Path):
    """集成测试用 FastAPI app（lifespan 全程运行）"""
    from todolist.gateway.main import create_app

    app = create_app()
    async with app.router.lifespan_context(app):
        yield app


@pytest_asyncio.fixture
async def client(integration_app) -> AsyncGenerator[AsyncClient, None]:
    """已注册并登录的 client"""
    async with AsyncClient(
        transport=ASGITransport(app=integration_app),
        base_url="http://test",
    ) as ac:
        credentials = {"email": "it@example.com", "password": "secret123"}
        await ac.post("/api/users/register", json={"name": "it", **credentials})
        resp = await ac.post("/api/users/login", json=credentials)
        assert resp.status_code == 200
        yield ac


@pytest.fixture
def wait_until() -> Callable[..., Awaitable[None]]:
    async def _wait(predicate, timeout_s: float = 3.0) -> None:
        async with asyncio.timeout(timeout_s):
            while not await predicate():
                await asyncio.sleep(0.01)

    return _wait

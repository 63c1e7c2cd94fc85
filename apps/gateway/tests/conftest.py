"""apps/gateway 测试配置 -- FastAPI app + httpx AsyncClient + 登录辅助"""

import asyncio
from collections.abc import AsyncGenerator, Awaitable, Callable
from pathlib import Path

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from todolist.core.compaction import BatchCompactor
from todolist.core.store import create_store_group


@pytest_asyncio.fixture
async def gateway_tmp_dir(tmp_path: Path) -> Path:
    """Gateway 临时数据目录"""
    db_dir = tmp_path / "sqlite"
    db_dir.mkdir(parents=True, exist_ok=True)
    return tmp_path


@pytest_asyncio.fixture
async def app(gateway_tmp_dir: Path, monkeypatch):
    """创建测试用 FastAPI app 实例（手动初始化，绕过 lifespan）"""
    db_path = str(gateway_tmp_dir / "sqlite" / "test.db")
    monkeypatch.setenv("TODOLIST_DB_PATH", db_path)
    monkeypatch.setenv("TODOLIST_SESSION_SECRET", "gateway-test-secret-with-32-plus-bytes")
    monkeypatch.setenv("LOGFIRE_SEND_TO_LOGFIRE", "false")

    from todolist.gateway.main import create_app

    application = create_app()

    store_group = await create_store_group(db_path)
    # 周期足够长，测试期间不会自动 tick
    compactor = BatchCompactor(
        store_group.task_store,
        capacity=3,
        interval_s=60,
        cancel_event=asyncio.Event(),
    )
    compactor.start()
    application.state.store_group = store_group
    application.state.compactor = compactor

    yield application

    await compactor.stop()
    await store_group.close()


@pytest_asyncio.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """提供未登录的 httpx AsyncClient"""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


@pytest_asyncio.fixture
async def make_user_client(
    app,
) -> AsyncGenerator[Callable[[str], Awaitable[tuple[AsyncClient, str]]], None]:
    """注册并登录用户，返回 (已携带会话 Cookie 的 client, user_id)"""
    clients: list[AsyncClient] = []

    async def _make(name: str) -> tuple[AsyncClient, str]:
        ac = AsyncClient(transport=ASGITransport(app=app), base_url="http://test")
        clients.append(ac)
        credentials = {"email": f"{name}@example.com", "password": "secret123"}
        resp = await ac.post("/api/users/register", json={"name": name, **credentials})
        assert resp.status_code == 201
        resp = await ac.post("/api/users/login", json=credentials)
        assert resp.status_code == 200
        return ac, resp.json()["user_id"]

    yield _make

    for ac in clients:
        await ac.aclose()


@pytest_asyncio.fixture
async def alice(make_user_client) -> tuple[AsyncClient, str]:
    return await make_user_client("alice")


@pytest_asyncio.fixture
async def bob(make_user_client) -> tuple[AsyncClient, str]:
    return await make_user_client("bob")

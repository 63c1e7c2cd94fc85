"""UserStore 单元测试 -- SQLite 与内存实现行为一致"""

from datetime import UTC, datetime, timedelta

import pytest
import pytest_asyncio
from todolist.core.exceptions import UserAlreadyExistsError, UserNotFoundError
from todolist.core.models import User
from todolist.core.store import InMemoryUserStore, SqliteUserStore


@pytest_asyncio.fixture(params=["sqlite", "memory"])
async def user_store(request, db_conn):
    if request.param == "sqlite":
        return SqliteUserStore(db_conn)
    return InMemoryUserStore()


def _user(n: int, email: str | None = None) -> User:
    return User(
        user_id=f"01JUSER{n:019d}",
        name=f"user{n}",
        email=email or f"user{n}@example.com",
        password_hash="$2b$04$placeholderplaceholderplacehol",
        created_at=datetime(2026, 1, 1, tzinfo=UTC) + timedelta(minutes=n),
    )


class TestUserStore:
    async def test_create_and_lookup(self, user_store):
        user = _user(1)
        await user_store.create_user(user)

        assert (await user_store.get_user(user.user_id)).email == user.email
        assert (await user_store.get_user_by_email(user.email)).user_id == user.user_id
        assert await user_store.get_user("missing") is None
        assert await user_store.get_user_by_email("nobody@example.com") is None

    async def test_duplicate_email_rejected(self, user_store):
        await user_store.create_user(_user(1, email="dup@example.com"))
        with pytest.raises(UserAlreadyExistsError):
            await user_store.create_user(_user(2, email="dup@example.com"))

    async def test_list_in_registration_order(self, user_store):
        await user_store.create_user(_user(2))
        await user_store.create_user(_user(1))

        users = await user_store.list_users()
        assert [u.name for u in users] == ["user1", "user2"]

    async def test_update(self, user_store):
        user = _user(1)
        await user_store.create_user(user)

        await user_store.update_user(user.model_copy(update={"name": "renamed"}))
        assert (await user_store.get_user(user.user_id)).name == "renamed"

    async def test_update_missing_raises(self, user_store):
        with pytest.raises(UserNotFoundError):
            await user_store.update_user(_user(9))

    async def test_update_to_taken_email_raises(self, user_store):
        await user_store.create_user(_user(1))
        second = _user(2)
        await user_store.create_user(second)

        with pytest.raises(UserAlreadyExistsError):
            await user_store.update_user(
                second.model_copy(update={"email": "user1@example.com"})
            )
        assert (await user_store.get_user(second.user_id)).email == second.email

    async def test_delete(self, user_store):
        user = _user(1)
        await user_store.create_user(user)
        await user_store.delete_user(user.user_id)

        assert await user_store.get_user(user.user_id) is None
        with pytest.raises(UserNotFoundError):
            await user_store.delete_user(user.user_id)

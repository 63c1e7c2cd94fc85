"""UserStore SQLite 实现"""

import asyncio
from datetime import datetime

import aiosqlite

from ..config import STORE_CALL_TIMEOUT_S
from ..exceptions import UserAlreadyExistsError, UserNotFoundError
from ..models.user import User
from .transaction import write_transaction

_USER_COLUMNS = "user_id, name, email, password_hash, created_at"


class SqliteUserStore:
    """UserStore 的 SQLite 实现"""

    def __init__(
        self,
        conn: aiosqlite.Connection,
        write_lock: asyncio.Lock | None = None,
        call_timeout_s: float = STORE_CALL_TIMEOUT_S,
    ) -> None:
        self._conn = conn
        self._write_lock = write_lock or asyncio.Lock()
        self._call_timeout_s = call_timeout_s

    async def create_user(self, user: User) -> None:
        """创建用户，邮箱唯一"""
        try:
            async with write_transaction(
                self._conn, self._write_lock, "create_user", self._call_timeout_s
            ):
                await self._conn.execute(
                    f"INSERT INTO users ({_USER_COLUMNS}) VALUES (?, ?, ?, ?, ?)",
                    (
                        user.user_id,
                        user.name,
                        user.email,
                        user.password_hash,
                        user.created_at.isoformat(),
                    ),
                )
        except aiosqlite.IntegrityError as e:
            raise UserAlreadyExistsError(user.email) from e

    async def get_user(self, user_id: str) -> User | None:
        cursor = await self._conn.execute(
            f"SELECT {_USER_COLUMNS} FROM users WHERE user_id = ?",
            (user_id,),
        )
        row = await cursor.fetchone()
        return self._row_to_user(row) if row else None

    async def get_user_by_email(self, email: str) -> User | None:
        cursor = await self._conn.execute(
            f"SELECT {_USER_COLUMNS} FROM users WHERE email = ?",
            (email,),
        )
        row = await cursor.fetchone()
        return self._row_to_user(row) if row else None

    async def list_users(self) -> list[User]:
        cursor = await self._conn.execute(
            f"SELECT {_USER_COLUMNS} FROM users ORDER BY created_at ASC"
        )
        rows = await cursor.fetchall()
        return [self._row_to_user(row) for row in rows]

    async def update_user(self, user: User) -> None:
        """更新用户名/邮箱/密码哈希

        Raises:
            UserNotFoundError: 用户不存在
            UserAlreadyExistsError: 新邮箱已被其他用户占用
        """
        try:
            async with write_transaction(
                self._conn, self._write_lock, "update_user", self._call_timeout_s
            ):
                cursor = await self._conn.execute(
                    """
                    UPDATE users SET name = ?, email = ?, password_hash = ?
                    WHERE user_id = ?
                    """,
                    (user.name, user.email, user.password_hash, user.user_id),
                )
                if cursor.rowcount == 0:
                    raise UserNotFoundError(user.user_id)
        except aiosqlite.IntegrityError as e:
            raise UserAlreadyExistsError(user.email) from e

    async def delete_user(self, user_id: str) -> None:
        """删除用户

        Raises:
            UserNotFoundError: 用户不存在
        """
        async with write_transaction(
            self._conn, self._write_lock, "delete_user", self._call_timeout_s
        ):
            cursor = await self._conn.execute(
                "DELETE FROM users WHERE user_id = ?",
                (user_id,),
            )
            if cursor.rowcount == 0:
                raise UserNotFoundError(user_id)

    @staticmethod
    def _row_to_user(row: aiosqlite.Row) -> User:
        """将数据库行转换为 User 模型"""
        return User(
            user_id=row[0],
            name=row[1],
            email=row[2],
            password_hash=row[3],
            created_at=datetime.fromisoformat(row[4]),
        )

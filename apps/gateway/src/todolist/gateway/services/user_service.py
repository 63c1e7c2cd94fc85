"""UserService -- 注册、登录、资料维护"""

from datetime import UTC, datetime

import structlog
from todolist.core.exceptions import InvalidCredentialsError, UserNotFoundError
from todolist.core.models import User, UserLoginRequest, UserRequest
from todolist.core.store import StoreGroup
from ulid import ULID

from ..auth.passwords import hash_password, verify_password

log = structlog.get_logger()


class UserService:
    """用户业务服务"""

    def __init__(self, store_group: StoreGroup) -> None:
        self._stores = store_group

    async def register(self, request: UserRequest) -> User:
        """注册新用户

        Raises:
            UserAlreadyExistsError: 邮箱已注册
        """
        user = User(
            user_id=str(ULID()),
            name=request.name,
            email=request.email.lower(),
            password_hash=hash_password(request.password),
            created_at=datetime.now(UTC),
        )
        await self._stores.user_store.create_user(user)
        log.info("user_registered", user_id=user.user_id)
        return user

    async def authenticate(self, request: UserLoginRequest) -> User:
        """校验邮箱与密码

        用户不存在与密码错误统一抛 InvalidCredentialsError。
        """
        user = await self._stores.user_store.get_user_by_email(request.email.lower())
        if user is None or not verify_password(request.password, user.password_hash):
            log.info("login_rejected")
            raise InvalidCredentialsError()
        return user

    async def get_user(self, user_id: str) -> User | None:
        return await self._stores.user_store.get_user(user_id)

    async def list_users(self) -> list[User]:
        return await self._stores.user_store.list_users()

    async def update_user(self, user_id: str, request: UserRequest) -> User:
        """更新用户资料，密码重新哈希

        Raises:
            UserNotFoundError: 用户不存在
            UserAlreadyExistsError: 新邮箱已被占用
        """
        current = await self._stores.user_store.get_user(user_id)
        if current is None:
            raise UserNotFoundError(user_id)

        updated = current.model_copy(
            update={
                "name": request.name,
                "email": request.email.lower(),
                "password_hash": hash_password(request.password),
            }
        )
        await self._stores.user_store.update_user(updated)
        return updated

    async def delete_user(self, user_id: str) -> None:
        """删除用户

        Raises:
            UserNotFoundError: 用户不存在
        """
        await self._stores.user_store.delete_user(user_id)
        log.info("user_deleted", user_id=user_id)

"""用户路由 -- 注册、登录、登出与资料维护

资料的读取、修改、删除只允许本人操作，否则 403。
"""

from fastapi import APIRouter, Depends, Response
from pydantic import BaseModel
from todolist.core.exceptions import (
    InvalidCredentialsError,
    UserAlreadyExistsError,
    UserNotFoundError,
)
from todolist.core.models import UserLoginRequest, UserPublic, UserRequest

from ..auth.session import ACCESS_COOKIE, REFRESH_COOKIE
from ..deps import (
    get_current_user_id,
    get_session_signer,
    get_store_group,
    set_access_cookie,
    set_refresh_cookie,
)
from ..responses import error_response
from ..services.user_service import UserService

router = APIRouter()


class UserListResponse(BaseModel):
    users: list[UserPublic]


def _forbidden():
    return error_response(403, "FORBIDDEN", "operation allowed on own account only")


def _user_not_found(user_id: str):
    return error_response(404, "USER_NOT_FOUND", f"User with id {user_id} does not exist")


def _user_conflict(e: UserAlreadyExistsError):
    return error_response(409, "USER_ALREADY_EXISTS", str(e))


@router.post("/api/users/register", status_code=201, response_model=UserPublic)
async def register(
    body: UserRequest,
    store_group=Depends(get_store_group),
):
    """注册新用户"""
    service = UserService(store_group)
    try:
        user = await service.register(body)
    except UserAlreadyExistsError as e:
        return _user_conflict(e)
    return UserPublic.from_user(user)


@router.post("/api/users/login", response_model=UserPublic)
async def login(
    body: UserLoginRequest,
    response: Response,
    store_group=Depends(get_store_group),
    signer=Depends(get_session_signer),
):
    """校验凭据并写入 access / refresh Cookie"""
    service = UserService(store_group)
    try:
        user = await service.authenticate(body)
    except InvalidCredentialsError as e:
        return error_response(401, "INVALID_CREDENTIALS", str(e))

    set_access_cookie(response, signer, signer.issue_access_token(user.user_id))
    set_refresh_cookie(response, signer, signer.issue_refresh_token(user.user_id))
    return UserPublic.from_user(user)


@router.post("/api/users/logout")
async def logout(response: Response):
    """清除会话 Cookie"""
    response.delete_cookie(ACCESS_COOKIE, path="/")
    response.delete_cookie(REFRESH_COOKIE, path="/")
    return {"status": "ok"}


@router.get("/api/users", response_model=UserListResponse)
async def list_users(
    _user_id: str = Depends(get_current_user_id),
    store_group=Depends(get_store_group),
):
    service = UserService(store_group)
    users = await service.list_users()
    return UserListResponse(users=[UserPublic.from_user(u) for u in users])


@router.get("/api/users/{user_id}", response_model=UserPublic)
async def get_user(
    user_id: str,
    current_user_id: str = Depends(get_current_user_id),
    store_group=Depends(get_store_group),
):
    if user_id != current_user_id:
        return _forbidden()

    user = await UserService(store_group).get_user(user_id)
    if user is None:
        return _user_not_found(user_id)
    return UserPublic.from_user(user)


@router.put("/api/users/{user_id}", response_model=UserPublic)
async def update_user(
    user_id: str,
    body: UserRequest,
    current_user_id: str = Depends(get_current_user_id),
    store_group=Depends(get_store_group),
):
    """更新本人资料（name / email / password）"""
    if user_id != current_user_id:
        return _forbidden()

    service = UserService(store_group)
    try:
        user = await service.update_user(user_id, body)
    except UserNotFoundError:
        return _user_not_found(user_id)
    except UserAlreadyExistsError as e:
        return _user_conflict(e)
    return UserPublic.from_user(user)


@router.delete("/api/users/{user_id}")
async def delete_user(
    user_id: str,
    response: Response,
    current_user_id: str = Depends(get_current_user_id),
    store_group=Depends(get_store_group),
):
    """删除本人账号并清除会话 Cookie"""
    if user_id != current_user_id:
        return _forbidden()

    try:
        await UserService(store_group).delete_user(user_id)
    except UserNotFoundError:
        return _user_not_found(user_id)

    response.delete_cookie(ACCESS_COOKIE, path="/")
    response.delete_cookie(REFRESH_COOKIE, path="/")
    return {"user_id": user_id, "deleted": True}

"""依赖注入模块 -- 通过 FastAPI Depends 注入 Store、压缩器与当前用户

Store 与压缩器通过 app.state 管理，在 lifespan 中初始化/清理。
"""

from fastapi import Request, Response
from todolist.core.compaction import BatchCompactor
from todolist.core.store import StoreGroup

from .auth.session import (
    ACCESS_COOKIE,
    REFRESH_COOKIE,
    InvalidTokenError,
    MissingTokenError,
    SessionSigner,
)


def get_store_group(request: Request) -> StoreGroup:
    """从 app.state 获取 StoreGroup 实例"""
    return request.app.state.store_group


def get_compactor(request: Request) -> BatchCompactor | None:
    """从 app.state 获取 BatchCompactor 实例"""
    return getattr(request.app.state, "compactor", None)


def get_session_signer(request: Request) -> SessionSigner:
    """从 app.state 获取 SessionSigner 实例"""
    return request.app.state.session_signer


def set_access_cookie(response: Response, signer: SessionSigner, token: str) -> None:
    response.set_cookie(
        ACCESS_COOKIE,
        token,
        max_age=signer.config.access_ttl_s,
        path="/",
        secure=signer.config.cookie_secure,
        httponly=True,
        samesite="lax",
    )


def set_refresh_cookie(response: Response, signer: SessionSigner, token: str) -> None:
    response.set_cookie(
        REFRESH_COOKIE,
        token,
        max_age=signer.config.refresh_ttl_s,
        path="/",
        secure=signer.config.cookie_secure,
        httponly=True,
        samesite="lax",
    )


def get_current_user_id(request: Request) -> str:
    """校验会话 Cookie 并返回当前用户 ID

    access token 有效直接通过；缺失或失效时尝试 refresh token，
    成功则签发新的 access token 存入 request.state，
    由 SessionRefreshMiddleware 写回响应 Cookie（含错误响应）。

    Raises:
        MissingTokenError: 两种 Cookie 都不存在
        InvalidTokenError: refresh token 不合法或已过期
    """
    signer = get_session_signer(request)
    access_token = request.cookies.get(ACCESS_COOKIE)
    refresh_token = request.cookies.get(REFRESH_COOKIE)

    if not access_token and not refresh_token:
        raise MissingTokenError("missing access token")

    if access_token:
        try:
            return signer.verify(access_token, "access")["sub"]
        except InvalidTokenError:
            if not refresh_token:
                raise

    if not refresh_token:
        raise MissingTokenError("missing refresh token")

    claims = signer.verify(refresh_token, "refresh")
    user_id = claims["sub"]
    request.state.refreshed_access_token = signer.issue_access_token(user_id)
    return user_id

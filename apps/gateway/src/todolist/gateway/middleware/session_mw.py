"""SessionRefreshMiddleware -- 将续签的 access token 写回响应

get_current_user_id 通过 refresh token 续签后，新 token 存于
request.state.refreshed_access_token。路由直接返回的错误响应
（404/403/409）同样需要带上新 Cookie，否则客户端每次请求都会重新续签。
"""

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from ..auth.session import ACCESS_COOKIE
from ..deps import set_access_cookie


class SessionRefreshMiddleware(BaseHTTPMiddleware):
    """续签 Cookie 回写中间件"""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        # 先初始化 scope["state"]，下游复制 scope 时共享同一个 state
        state = request.state
        response = await call_next(request)

        token = getattr(state, "refreshed_access_token", None)
        if token is None:
            return response

        # 路由已自行设置或清除 access Cookie（如登出、注销）时不覆盖
        prefix = f"{ACCESS_COOKIE}="
        if any(v.startswith(prefix) for v in response.headers.getlist("set-cookie")):
            return response

        set_access_cookie(response, request.app.state.session_signer, token)
        return response

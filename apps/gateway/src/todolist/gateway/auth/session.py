"""会话令牌 -- HS256 JWT access / refresh token

claims: sub / typ / iss / aud / iat / exp。
签名、签发方、受众、过期（含容差）由 PyJWT 校验，typ 在此处校验。
"""

import time
from collections.abc import Callable
from typing import Any, Literal

import jwt

from ..config import SessionConfig

ACCESS_COOKIE = "access_token"
REFRESH_COOKIE = "refresh_token"

_ALGORITHM = "HS256"

TokenType = Literal["access", "refresh"]


class SessionError(Exception):
    """会话校验失败基础异常（统一映射为 401）"""


class MissingTokenError(SessionError):
    """请求未携带所需 Cookie"""


class InvalidTokenError(SessionError):
    """令牌格式、签名、类型、签发方或受众不合法"""


class ExpiredTokenError(InvalidTokenError):
    """令牌已过期"""


class SessionSigner:
    """签发与校验会话令牌"""

    def __init__(
        self,
        config: SessionConfig,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """
        Args:
            config: 会话配置
            clock: 签发时间来源（校验使用 PyJWT 自身时钟）
        """
        self._config = config
        self._key = config.secret.get_secret_value()
        self._clock = clock

    @property
    def config(self) -> SessionConfig:
        return self._config

    def issue_access_token(self, user_id: str) -> str:
        return self._issue(user_id, "access", self._config.access_ttl_s)

    def issue_refresh_token(self, user_id: str) -> str:
        return self._issue(user_id, "refresh", self._config.refresh_ttl_s)

    def verify(self, token: str, expected_type: TokenType) -> dict[str, Any]:
        """校验令牌并返回 claims

        Raises:
            InvalidTokenError: 签名/格式/类型/签发方/受众不合法
            ExpiredTokenError: 超过 exp + leeway
        """
        try:
            claims = jwt.decode(
                token,
                self._key,
                algorithms=[_ALGORITHM],
                audience=self._config.audience,
                issuer=self._config.issuer,
                leeway=self._config.leeway_s,
                options={"require": ["sub", "typ", "iat", "exp"]},
            )
        except jwt.ExpiredSignatureError as e:
            raise ExpiredTokenError(f"{expected_type} token expired") from e
        except jwt.InvalidTokenError as e:
            raise InvalidTokenError(str(e)) from e

        if claims["typ"] != expected_type:
            raise InvalidTokenError(f"expected {expected_type} token")
        return claims

    def _issue(self, user_id: str, token_type: TokenType, ttl_s: int) -> str:
        now = int(self._clock())
        claims = {
            "sub": user_id,
            "typ": token_type,
            "iss": self._config.issuer,
            "aud": self._config.audience,
            "iat": now,
            "exp": now + ttl_s,
        }
        return jwt.encode(claims, self._key, algorithm=_ALGORITHM)

"""Gateway 配置 -- 会话 Cookie 与令牌签发参数

从环境变量加载，非法数值记录告警并使用默认值，不阻塞启动。
"""

import os

import structlog
from pydantic import BaseModel, Field, SecretStr

log = structlog.get_logger()

# 开发环境默认密钥，生产环境必须通过 TODOLIST_SESSION_SECRET 覆盖
_DEV_SECRET = "todolist-dev-secret-change-me-before-deploying"


class SessionConfig(BaseModel):
    """会话配置

    环境变量:
        TODOLIST_SESSION_SECRET: HS256 签名密钥
        TODOLIST_ACCESS_TTL_S: access token 有效期（秒，默认 15 分钟）
        TODOLIST_REFRESH_TTL_S: refresh token 有效期（秒，默认 7 天）
        TODOLIST_COOKIE_SECURE: Cookie 是否带 Secure 属性
    """

    secret: SecretStr = Field(default=SecretStr(_DEV_SECRET), description="签名密钥")
    issuer: str = Field(default="todolist-service", description="令牌签发方")
    audience: str = Field(default="todolist-client", description="令牌受众")
    access_ttl_s: int = Field(default=15 * 60, ge=1, description="access token 有效期")
    refresh_ttl_s: int = Field(
        default=7 * 24 * 3600, ge=1, description="refresh token 有效期"
    )
    leeway_s: int = Field(default=60, ge=0, description="过期判定容差（秒）")
    cookie_secure: bool = Field(default=False, description="Cookie Secure 属性")


def load_session_config() -> SessionConfig:
    """从环境变量加载会话配置

    Returns:
        SessionConfig 实例
    """
    kwargs: dict = {}

    if val := os.environ.get("TODOLIST_SESSION_SECRET"):
        kwargs["secret"] = SecretStr(val)
    else:
        log.warning("session_secret_not_configured", message="使用开发环境默认密钥")

    for env_var, field in (
        ("TODOLIST_ACCESS_TTL_S", "access_ttl_s"),
        ("TODOLIST_REFRESH_TTL_S", "refresh_ttl_s"),
    ):
        if val := os.environ.get(env_var):
            try:
                kwargs[field] = int(val)
            except ValueError:
                log.warning(
                    "invalid_ttl_config",
                    env_var=env_var,
                    value=val,
                )

    if val := os.environ.get("TODOLIST_COOKIE_SECURE"):
        kwargs["cookie_secure"] = val.lower() in ("1", "true", "yes")

    return SessionConfig(**kwargs)

"""User Domain Model"""

from datetime import datetime

from pydantic import BaseModel, Field

# 简化的邮箱格式校验
EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


class User(BaseModel):
    """User 数据模型（含密码哈希，仅在服务端流转）"""

    user_id: str = Field(description="唯一标识，ULID 格式")
    name: str = Field(description="用户名")
    email: str = Field(description="邮箱，唯一")
    password_hash: str = Field(description="bcrypt 密码哈希")
    created_at: datetime = Field(description="注册时间")


class UserRequest(BaseModel):
    """注册/更新请求体"""

    name: str = Field(min_length=1, max_length=100, description="用户名")
    email: str = Field(pattern=EMAIL_PATTERN, max_length=254, description="邮箱")
    password: str = Field(min_length=6, max_length=128, description="明文密码")


class UserLoginRequest(BaseModel):
    """登录请求体"""

    email: str = Field(pattern=EMAIL_PATTERN, description="邮箱")
    password: str = Field(min_length=1, description="明文密码")


class UserPublic(BaseModel):
    """对外返回的用户信息（不含密码哈希）"""

    user_id: str
    name: str
    email: str
    created_at: datetime

    @classmethod
    def from_user(cls, user: User) -> "UserPublic":
        return cls(
            user_id=user.user_id,
            name=user.name,
            email=user.email,
            created_at=user.created_at,
        )

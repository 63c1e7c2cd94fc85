"""密码哈希 -- bcrypt

bcrypt 只处理前 72 字节，超出部分截断，哈希与校验两端一致。
"""

import bcrypt

# bcrypt 默认代价因子
DEFAULT_ROUNDS = 10

_MAX_PASSWORD_BYTES = 72


def _encode(password: str) -> bytes:
    return password.encode("utf-8")[:_MAX_PASSWORD_BYTES]


def hash_password(password: str, rounds: int = DEFAULT_ROUNDS) -> str:
    """生成带盐的 bcrypt 哈希"""
    hashed = bcrypt.hashpw(_encode(password), bcrypt.gensalt(rounds=rounds))
    return hashed.decode("ascii")


def verify_password(password: str, encoded: str) -> bool:
    """校验密码，哈希格式不合法视为不匹配"""
    try:
        return bcrypt.checkpw(_encode(password), encoded.encode("ascii"))
    except ValueError:
        return False

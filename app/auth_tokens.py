"""JWT creation/verification and bcrypt password hashing"""
from datetime import datetime, timezone
from typing import Optional

import bcrypt
import jwt

ALGORITHM = "HS256"


def hash_password(password: str, work_factor: int) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=work_factor)).decode("utf-8")


def check_password(password: str, hashed: str) -> bool:
    return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))


def create_token(user_id: int, is_admin: bool, secret_key: str) -> str:
    payload = {
        "id": user_id,
        "is_admin": bool(is_admin),
        "iat": int(datetime.now(timezone.utc).timestamp()),
    }
    return jwt.encode(payload, secret_key, algorithm=ALGORITHM)


def decode_token(token: str, secret_key: str) -> Optional[dict]:
    """Return the token payload, or None if the token is invalid."""
    try:
        return jwt.decode(token, secret_key, algorithms=[ALGORITHM])
    except jwt.PyJWTError:
        return None

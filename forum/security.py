import secrets
import string
import uuid

import bcrypt

from forum.config import settings

_ALPHANUMERIC = string.ascii_letters + string.digits


def hash_password(password: str) -> str:
    """Hash password with configurable rounds (BCRYPT_ROUNDS)."""
    # Bcrypt has a 72 byte limit
    password_bytes = password.encode("utf-8")[:72]
    hashed = bcrypt.hashpw(password_bytes, bcrypt.gensalt(rounds=settings.BCRYPT_ROUNDS))
    return hashed.decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    password_bytes = plain_password.encode("utf-8")[:72]
    try:
        return bcrypt.checkpw(password_bytes, hashed_password.encode("utf-8"))
    except ValueError:
        # Stored value is not a bcrypt hash
        return False


def random_password(length: int) -> str:
    return "".join(secrets.choice(_ALPHANUMERIC) for _ in range(length))


def activation_key() -> str:
    return uuid.uuid4().hex

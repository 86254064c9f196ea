import re

from passlib.context import CryptContext

_pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# At least one lowercase letter, one uppercase letter and one digit
_PASSWORD_POLICY = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)")
MIN_PASSWORD_LENGTH = 6


def hash_password(password: str) -> str:
    # bcrypt only looks at the first 72 bytes
    return _pwd_context.hash(password[:72])


def verify_password(password: str, password_hash: str | None) -> bool:
    if not password_hash:
        return False
    return _pwd_context.verify(password[:72], password_hash)


def is_strong_password(password: str) -> bool:
    return len(password) >= MIN_PASSWORD_LENGTH and bool(_PASSWORD_POLICY.match(password))
